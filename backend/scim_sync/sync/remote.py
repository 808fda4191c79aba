import abc

from scim_sync.db.enums import ScimResourceType
from scim_sync.scim.models import ScimResource
from scim_sync.scim.patch import ScimPatchPlan


class RemoteDirectoryClient(abc.ABC):
    """Transport to the remote SCIM directory.

    Implementations own HTTP, authentication and retries. Errors should be
    raised; the reconciler records them against the entity being synced.
    """

    @abc.abstractmethod
    def create(
        self, resource_type: ScimResourceType, resource: ScimResource
    ) -> ScimResource:
        """POST the resource and return the server's copy, including its ``id``."""
        raise NotImplementedError

    @abc.abstractmethod
    def patch(self, plan: ScimPatchPlan) -> None:
        """Send the plan's operations to ``plan.url``."""
        raise NotImplementedError
