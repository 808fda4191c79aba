"""SCIM mapping Data Access Layer.

All database operations on the local id <-> SCIM id mapping table, scoped
to one realm and one remote-directory component. Extends the base DAL (see
``scim_sync.db.dal``).

Usage::

    with SqlEngine.get_session() as session:
        dal = ScimMappingDAL(session, realm_id="acme", component_id="okta")
        mapping = dal.find(MappingLookup.BY_LOCAL_ID, user_id, ScimResourceType.USER)
        if mapping is None:
            dal.create_mapping(user_id, str(uuid4()), ScimResourceType.USER)
        dal.commit()
"""

from __future__ import annotations

from sqlalchemy import func
from sqlalchemy import Select
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from scim_sync.db.dal import DAL
from scim_sync.db.enums import MappingLookup
from scim_sync.db.enums import ScimResourceType
from scim_sync.db.interface import MappingConflictError
from scim_sync.db.interface import MappingStore
from scim_sync.db.models import ScimMapping
from scim_sync.utils.logger import setup_logger

logger = setup_logger()


class ScimMappingDAL(DAL, MappingStore):
    """Data Access Layer for SCIM mapping records.

    Methods mutate but do NOT commit. Call ``dal.commit()`` explicitly
    when you want to persist changes.
    """

    def __init__(self, session: Session, realm_id: str, component_id: str) -> None:
        super().__init__(session)
        self.realm_id = realm_id
        self.component_id = component_id

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def find(
        self, lookup: MappingLookup, key: str, resource_type: ScimResourceType
    ) -> ScimMapping | None:
        if lookup == MappingLookup.BY_LOCAL_ID:
            return self.find_by_local_id(key, resource_type)
        if lookup == MappingLookup.BY_EXTERNAL_ID:
            return self.find_by_external_id(key, resource_type)
        raise ValueError(f"Unsupported mapping lookup: {lookup}")

    def find_by_local_id(
        self, local_id: str, resource_type: ScimResourceType
    ) -> ScimMapping | None:
        """Look up a mapping by the local directory's entity id."""
        return self._session.scalar(
            self._scoped(resource_type).where(ScimMapping.local_id == local_id)
        )

    def find_by_external_id(
        self, external_id: str, resource_type: ScimResourceType
    ) -> ScimMapping | None:
        """Look up a mapping by the remote directory's resource id."""
        return self._session.scalar(
            self._scoped(resource_type).where(ScimMapping.external_id == external_id)
        )

    def list_mappings(
        self,
        resource_type: ScimResourceType,
        start_index: int = 1,
        count: int = 100,
    ) -> tuple[list[ScimMapping], int]:
        """List mappings of one resource type with SCIM-style pagination.

        Args:
            start_index: 1-based start index (SCIM convention).
            count: Maximum number of results to return.

        Returns:
            A tuple of (mappings, total_count).
        """
        query = self._scoped(resource_type)
        total = (
            self._session.scalar(select(func.count()).select_from(query.subquery()))
            or 0
        )

        offset = max(start_index - 1, 0)
        mappings = list(
            self._session.scalars(
                query.order_by(ScimMapping.id).offset(offset).limit(count)
            ).all()
        )
        return mappings, total

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_mapping(
        self, local_id: str, external_id: str, resource_type: ScimResourceType
    ) -> ScimMapping:
        """Create a mapping. Raises ``IntegrityError`` if either side is taken."""
        mapping = ScimMapping(
            realm_id=self.realm_id,
            component_id=self.component_id,
            resource_type=resource_type,
            local_id=local_id,
            external_id=external_id,
        )
        self._session.add(mapping)
        self._session.flush()
        logger.info(
            "Persisted %s mapping: local_id=%s external_id=%s",
            resource_type,
            local_id,
            external_id,
        )
        return mapping

    def create_mapping_if_absent(
        self, local_id: str, external_id: str, resource_type: ScimResourceType
    ) -> ScimMapping:
        """Transactional create-if-absent.

        The insert runs inside a SAVEPOINT. If a concurrent writer got there
        first the unique constraint fires, only the savepoint is rolled back,
        and the winner's record is returned. A record is only ever returned
        for ``local_id``; an ``external_id`` owned by another local entity
        raises ``MappingConflictError``.
        """
        existing = self.find_by_local_id(local_id, resource_type)
        if existing is not None:
            self._warn_if_discarded(existing, external_id)
            return existing

        try:
            with self._session.begin_nested():
                return self.create_mapping(local_id, external_id, resource_type)
        except IntegrityError:
            winner = self.find_by_local_id(local_id, resource_type)
            if winner is not None:
                self._warn_if_discarded(winner, external_id)
                return winner

            owner = self.find_by_external_id(external_id, resource_type)
            if owner is None:
                raise
            raise MappingConflictError(
                f"{resource_type} external_id={external_id} is already mapped to "
                f"local_id={owner.local_id}, cannot map it to local_id={local_id}"
            )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _warn_if_discarded(kept: ScimMapping, external_id: str) -> None:
        if kept.external_id == external_id:
            return
        logger.warning(
            "Conflicting %s mapping for local_id=%s: kept external_id=%s, "
            "discarded external_id=%s",
            kept.resource_type,
            kept.local_id,
            kept.external_id,
            external_id,
        )

    def _scoped(self, resource_type: ScimResourceType) -> Select[tuple[ScimMapping]]:
        return select(ScimMapping).where(
            ScimMapping.realm_id == self.realm_id,
            ScimMapping.component_id == self.component_id,
            ScimMapping.resource_type == resource_type,
        )
