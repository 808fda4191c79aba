"""Outbound SCIM PATCH plans (RFC 7644 §3.5.2).

A ``ScimPatchPlan`` is the ordered list of operations that brings a remote
resource in line with the local state, addressed to one resource URL::

    plan = (
        ScimPatchPlan("Users/2819c223")
        .replace("active", True)
        .replace("userName", "bjensen")
    )
    client.patch(plan)

Operations are kept in insertion order. Servers apply them sequentially, so
the order is part of the contract.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from dataclasses import field
from typing import Any

from scim_sync.scim.models import ScimGroupMember
from scim_sync.scim.models import ScimPatchOperation
from scim_sync.scim.models import ScimPatchOperationType
from scim_sync.scim.models import ScimPatchRequest
from scim_sync.scim.models import ScimPatchValue


@dataclass
class ScimPatchPlan:
    url: str
    operations: list[ScimPatchOperation] = field(default_factory=list)

    def replace(self, path: str, value: ScimPatchValue) -> ScimPatchPlan:
        self.operations.append(
            ScimPatchOperation(op=ScimPatchOperationType.REPLACE, path=path, value=value)
        )
        return self

    def remove(self, path: str) -> ScimPatchPlan:
        self.operations.append(
            ScimPatchOperation(op=ScimPatchOperationType.REMOVE, path=path, value=None)
        )
        return self

    def paths(self) -> list[str | None]:
        return [op.path for op in self.operations]

    def find(self, path: str) -> ScimPatchOperation | None:
        """Return the first operation targeting *path* (case-insensitive)."""
        lowered = path.lower()
        for op in self.operations:
            if (op.path or "").lower() == lowered:
                return op
        return None

    def to_request(self) -> ScimPatchRequest:
        return ScimPatchRequest(Operations=list(self.operations))

    def to_payload(self) -> dict[str, Any]:
        """Serialize to a PatchOp message body.

        ``value`` is always present: REMOVE operations carry an explicit
        ``null`` so they stay distinguishable from a REPLACE with ``[]``.
        """
        request = self.to_request()
        return {
            "schemas": list(request.schemas),
            "Operations": [
                {
                    "op": op.op.value,
                    "path": op.path,
                    "value": _dump_value(op.value),
                }
                for op in request.Operations
            ],
        }

    def __iter__(self) -> Iterator[ScimPatchOperation]:
        return iter(self.operations)

    def __len__(self) -> int:
        return len(self.operations)


def _dump_value(value: ScimPatchValue) -> Any:
    if isinstance(value, list):
        return [
            m.model_dump(by_alias=True, exclude_none=True)
            if isinstance(m, ScimGroupMember)
            else m
            for m in value
        ]
    return value
