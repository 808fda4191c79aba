"""scim-sync: reconcile users and groups between a local directory and a
remote SCIM 2.0 directory service (RFC 7643/7644)."""

__version__ = "0.1.0"
