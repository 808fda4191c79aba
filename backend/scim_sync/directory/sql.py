from collections.abc import Iterator

from sqlalchemy import func
from sqlalchemy import select
from sqlalchemy.orm import Session

from scim_sync.db.dal import DAL
from scim_sync.db.models import DirectoryGroup
from scim_sync.db.models import DirectoryUser
from scim_sync.directory.interface import LocalDirectory


class SqlLocalDirectory(DAL, LocalDirectory):
    """``LocalDirectory`` backed by the reference directory tables.

    Like the other DALs, writes are flushed and left for the caller to commit.
    """

    def __init__(self, session: Session, realm_id: str) -> None:
        super().__init__(session)
        self.realm_id = realm_id

    def get_user_by_id(self, user_id: str) -> DirectoryUser | None:
        return self._session.scalar(
            select(DirectoryUser).where(
                DirectoryUser.realm_id == self.realm_id, DirectoryUser.id == user_id
            )
        )

    def get_user_by_username(self, username: str) -> DirectoryUser | None:
        """Fetch a user by username (case-insensitive)."""
        return self._session.scalar(
            select(DirectoryUser).where(
                DirectoryUser.realm_id == self.realm_id,
                func.lower(DirectoryUser.username) == username.lower(),
            )
        )

    def get_user_by_email(self, email: str) -> DirectoryUser | None:
        """Fetch a user by email (case-insensitive)."""
        return self._session.scalar(
            select(DirectoryUser).where(
                DirectoryUser.realm_id == self.realm_id,
                func.lower(DirectoryUser.email) == email.lower(),
            )
        )

    def search_users(self, enabled: bool | None = None) -> Iterator[DirectoryUser]:
        query = select(DirectoryUser).where(DirectoryUser.realm_id == self.realm_id)
        if enabled is not None:
            query = query.where(DirectoryUser.enabled.is_(enabled))
        # materialize first so callers may write to the session mid-iteration
        yield from list(self._session.scalars(query.order_by(DirectoryUser.username)))

    def add_user(self, username: str) -> DirectoryUser:
        user = DirectoryUser(realm_id=self.realm_id, username=username, attributes={})
        self._session.add(user)
        self._session.flush()
        return user

    def get_group_by_id(self, group_id: str) -> DirectoryGroup | None:
        return self._session.scalar(
            select(DirectoryGroup).where(
                DirectoryGroup.realm_id == self.realm_id,
                DirectoryGroup.id == group_id,
            )
        )

    def list_groups(self) -> Iterator[DirectoryGroup]:
        yield from list(
            self._session.scalars(
                select(DirectoryGroup)
                .where(DirectoryGroup.realm_id == self.realm_id)
                .order_by(DirectoryGroup.name)
            )
        )

    def create_group(self, name: str) -> DirectoryGroup:
        group = DirectoryGroup(realm_id=self.realm_id, name=name, attributes={})
        self._session.add(group)
        self._session.flush()
        return group

    def get_group_members(self, group: DirectoryGroup) -> Iterator[DirectoryUser]:
        yield from list(group.members)

    def join_group(self, user: DirectoryUser, group: DirectoryGroup) -> None:
        if group not in user.groups:
            user.groups.append(group)
            self._session.flush()
