from unittest.mock import call
from unittest.mock import MagicMock

from scim_sync.sync.context import SyncContext


def _ctx() -> tuple[SyncContext, MagicMock]:
    parent = MagicMock()
    ctx = SyncContext(
        directory=parent.directory,
        mappings=parent.mappings,
        realm_id="acme",
        component_id="remote-1",
    )
    return ctx, parent


class TestSyncContextUnitOfWork:
    def test_commit_covers_directory_and_mappings(self) -> None:
        ctx, parent = _ctx()

        ctx.commit()

        assert parent.mock_calls == [call.directory.commit(), call.mappings.commit()]

    def test_rollback_covers_directory_and_mappings(self) -> None:
        ctx, parent = _ctx()

        ctx.rollback()

        assert parent.mock_calls == [
            call.mappings.rollback(),
            call.directory.rollback(),
        ]
