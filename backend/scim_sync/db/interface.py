import abc

from scim_sync.db.enums import MappingLookup
from scim_sync.db.enums import ScimResourceType
from scim_sync.db.models import ScimMapping


class MappingConflictError(RuntimeError):
    """Raised when the external id being saved is already mapped to a
    different local entity."""


class MappingStore(abc.ABC):
    """Persists local id <-> SCIM id correspondences.

    Lookups return ``None`` when no record exists; a missing mapping is an
    expected outcome and never an error.
    """

    @abc.abstractmethod
    def find(
        self, lookup: MappingLookup, key: str, resource_type: ScimResourceType
    ) -> ScimMapping | None:
        raise NotImplementedError

    @abc.abstractmethod
    def create_mapping(
        self, local_id: str, external_id: str, resource_type: ScimResourceType
    ) -> ScimMapping:
        raise NotImplementedError

    @abc.abstractmethod
    def create_mapping_if_absent(
        self, local_id: str, external_id: str, resource_type: ScimResourceType
    ) -> ScimMapping:
        """Persist the mapping unless one already exists for either side.

        Returns the stored record for ``local_id``, which belongs to the
        earlier writer when the mapping already existed.

        Raises:
            MappingConflictError: If ``external_id`` is already mapped to a
                different local entity.
        """
        raise NotImplementedError

    @abc.abstractmethod
    def commit(self) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def rollback(self) -> None:
        raise NotImplementedError
