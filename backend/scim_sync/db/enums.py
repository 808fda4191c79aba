from enum import Enum as PyEnum


class ScimResourceType(str, PyEnum):
    USER = "User"
    GROUP = "Group"

    def __str__(self) -> str:
        return self.value


class MappingLookup(str, PyEnum):
    BY_LOCAL_ID = "by_local_id"
    BY_EXTERNAL_ID = "by_external_id"
