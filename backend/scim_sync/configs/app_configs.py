import os

#####
# Logging
#####
LOG_LEVEL = os.environ.get("LOG_LEVEL", "info")

#####
# Local directory attribute gates
#####
# Users and groups carrying this attribute with value "true" are never synced
SCIM_SKIP_ATTRIBUTE = os.environ.get("SCIM_SKIP_ATTRIBUTE") or "scim-skip"
# Roles carrying this attribute with value "true" are exported to the remote
SCIM_EXPORT_ROLE_ATTRIBUTE = os.environ.get("SCIM_EXPORT_ROLE_ATTRIBUTE") or "scim"

# Comma separated usernames that an outbound refresh must never overwrite
SCIM_RESERVED_USERNAMES: frozenset[str] = frozenset(
    name.strip()
    for name in (os.environ.get("SCIM_RESERVED_USERNAMES") or "admin").split(",")
    if name.strip()
)

#####
# Remote directory
#####
SCIM_USERS_ENDPOINT = os.environ.get("SCIM_USERS_ENDPOINT") or "Users"
SCIM_GROUPS_ENDPOINT = os.environ.get("SCIM_GROUPS_ENDPOINT") or "Groups"

#####
# Mapping store
#####
SCIM_SYNC_DATABASE_URL = os.environ.get("SCIM_SYNC_DATABASE_URL") or "sqlite://"
SCIM_SYNC_DATABASE_ECHO = (
    os.environ.get("SCIM_SYNC_DATABASE_ECHO") or "false"
).lower() == "true"
