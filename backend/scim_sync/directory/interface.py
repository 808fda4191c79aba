import abc
from collections.abc import Iterator

from scim_sync.db.models import DirectoryGroup
from scim_sync.db.models import DirectoryUser


class LocalDirectory(abc.ABC):
    """Accessor for the local identity directory of one realm."""

    realm_id: str

    # users

    @abc.abstractmethod
    def get_user_by_id(self, user_id: str) -> DirectoryUser | None:
        raise NotImplementedError

    @abc.abstractmethod
    def get_user_by_username(self, username: str) -> DirectoryUser | None:
        raise NotImplementedError

    @abc.abstractmethod
    def get_user_by_email(self, email: str) -> DirectoryUser | None:
        raise NotImplementedError

    @abc.abstractmethod
    def search_users(self, enabled: bool | None = None) -> Iterator[DirectoryUser]:
        raise NotImplementedError

    @abc.abstractmethod
    def add_user(self, username: str) -> DirectoryUser:
        raise NotImplementedError

    # groups

    @abc.abstractmethod
    def get_group_by_id(self, group_id: str) -> DirectoryGroup | None:
        raise NotImplementedError

    @abc.abstractmethod
    def list_groups(self) -> Iterator[DirectoryGroup]:
        raise NotImplementedError

    @abc.abstractmethod
    def create_group(self, name: str) -> DirectoryGroup:
        raise NotImplementedError

    @abc.abstractmethod
    def get_group_members(self, group: DirectoryGroup) -> Iterator[DirectoryUser]:
        raise NotImplementedError

    @abc.abstractmethod
    def join_group(self, user: DirectoryUser, group: DirectoryGroup) -> None:
        raise NotImplementedError

    # unit of work

    @abc.abstractmethod
    def commit(self) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def rollback(self) -> None:
        raise NotImplementedError
