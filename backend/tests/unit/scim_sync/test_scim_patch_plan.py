from scim_sync.scim.models import SCIM_PATCH_OP_SCHEMA
from scim_sync.scim.models import ScimGroupMember
from scim_sync.scim.models import ScimGroupResource
from scim_sync.scim.models import ScimPatchOperation
from scim_sync.scim.models import ScimPatchOperationType
from scim_sync.scim.models import ScimPatchRequest
from scim_sync.scim.patch import ScimPatchPlan


class TestScimPatchPlan:
    def test_operations_keep_insertion_order(self) -> None:
        plan = (
            ScimPatchPlan("Groups/g1")
            .remove("members")
            .replace("displayName", "staff")
            .replace("externalId", "local-1")
        )

        assert len(plan) == 3
        assert plan.paths() == ["members", "displayName", "externalId"]

    def test_payload_shape(self) -> None:
        plan = (
            ScimPatchPlan("Groups/g1")
            .replace(
                "members",
                [ScimGroupMember(value="u1", type="User", ref="Users/u1")],
            )
            .replace("displayName", "staff")
        )

        payload = plan.to_payload()

        assert payload == {
            "schemas": [SCIM_PATCH_OP_SCHEMA],
            "Operations": [
                {
                    "op": "replace",
                    "path": "members",
                    "value": [{"value": "u1", "type": "User", "$ref": "Users/u1"}],
                },
                {"op": "replace", "path": "displayName", "value": "staff"},
            ],
        }

    def test_remove_is_distinct_from_empty_replace(self) -> None:
        removed = ScimPatchPlan("Groups/g1").remove("members").to_payload()
        emptied = ScimPatchPlan("Groups/g1").replace("members", []).to_payload()

        assert removed["Operations"] == [
            {"op": "remove", "path": "members", "value": None}
        ]
        assert emptied["Operations"] == [
            {"op": "replace", "path": "members", "value": []}
        ]

    def test_find_is_case_insensitive(self) -> None:
        plan = ScimPatchPlan("Users/u1").replace("userName", "bjensen")

        op = plan.find("username")

        assert op is not None
        assert op.value == "bjensen"
        assert plan.find("active") is None

    def test_to_request_copies_operations(self) -> None:
        plan = ScimPatchPlan("Users/u1").replace("active", False)

        request = plan.to_request()
        plan.replace("userName", "bjensen")

        assert len(request.Operations) == 1
        assert request.schemas == [SCIM_PATCH_OP_SCHEMA]


class TestScimModels:
    def test_patch_op_is_normalized(self) -> None:
        op = ScimPatchOperation.model_validate(
            {"op": "Replace", "path": "active", "value": False}
        )

        assert op.op == ScimPatchOperationType.REPLACE
        assert op.value is False

    def test_member_ref_alias(self) -> None:
        group = ScimGroupResource.model_validate(
            {
                "id": "g1",
                "displayName": "staff",
                "members": [{"value": "u1", "$ref": "Users/u1", "type": "User"}],
            }
        )

        assert group.members[0].ref == "Users/u1"
        dumped = group.model_dump(by_alias=True, exclude_none=True)
        assert dumped["members"] == [{"value": "u1", "type": "User", "$ref": "Users/u1"}]

    def test_inbound_add_op_is_accepted(self) -> None:
        request = ScimPatchRequest.model_validate(
            {
                "schemas": [SCIM_PATCH_OP_SCHEMA],
                "Operations": [
                    {"op": "Add", "path": "members", "value": [{"value": "u1"}]}
                ],
            }
        )

        op = request.Operations[0]
        assert op.op == ScimPatchOperationType.ADD
        assert isinstance(op.value, list)
        assert op.value[0].value == "u1"
