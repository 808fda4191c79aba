from collections.abc import Callable

from sqlalchemy.orm import Session

from scim_sync.db.models import DirectoryGroup
from scim_sync.db.models import DirectoryRole
from scim_sync.db.models import DirectoryUser
from scim_sync.directory.sql import SqlLocalDirectory


class TestSqlLocalDirectory:
    def test_lookups_are_case_insensitive(
        self,
        directory: SqlLocalDirectory,
        make_user: Callable[..., DirectoryUser],
    ) -> None:
        alice = make_user("Alice", email="Alice@Example.com")

        assert directory.get_user_by_username("alice") is alice
        assert directory.get_user_by_email("alice@example.COM") is alice

    def test_lookups_are_scoped_to_realm(
        self,
        db_session: Session,
        make_user: Callable[..., DirectoryUser],
    ) -> None:
        alice = make_user("alice")
        other_realm = SqlLocalDirectory(db_session, realm_id="other")

        assert other_realm.get_user_by_id(alice.id) is None
        assert other_realm.get_user_by_username("alice") is None

    def test_join_group_is_idempotent(
        self,
        directory: SqlLocalDirectory,
        make_group: Callable[..., DirectoryGroup],
        make_user: Callable[..., DirectoryUser],
    ) -> None:
        group = make_group("staff")
        alice = make_user("alice")

        directory.join_group(alice, group)
        directory.join_group(alice, group)

        assert [u.id for u in directory.get_group_members(group)] == [alice.id]

    def test_search_users_filters_enabled(
        self,
        directory: SqlLocalDirectory,
        make_user: Callable[..., DirectoryUser],
    ) -> None:
        make_user("bob", enabled=False)
        make_user("alice")

        assert [u.username for u in directory.search_users()] == ["alice", "bob"]
        assert [u.username for u in directory.search_users(enabled=False)] == ["bob"]

    def test_first_attribute(
        self, make_role: Callable[..., DirectoryRole]
    ) -> None:
        exported = make_role("editor")
        hidden = make_role("internal", exported=False)

        assert exported.get_first_attribute("scim") == "true"
        assert hidden.get_first_attribute("scim") is None
