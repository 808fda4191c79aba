from dataclasses import dataclass

from scim_sync.db.interface import MappingStore
from scim_sync.directory.interface import LocalDirectory


@dataclass(frozen=True)
class SyncContext:
    """Everything an adapter needs for one reconciliation pass.

    Passed explicitly into every adapter; there is no ambient session.
    The directory and the mapping store form one unit of work: both are
    committed or rolled back together, and may share a session.
    """

    directory: LocalDirectory
    mappings: MappingStore
    realm_id: str
    component_id: str

    def commit(self) -> None:
        self.directory.commit()
        self.mappings.commit()

    def rollback(self) -> None:
        self.mappings.rollback()
        self.directory.rollback()
