# event_member_field_equals.py
# "the <field> field on goldcast event member <eventId> should <operator> <expectation>"

from typing import Any

from goldcast_cog.models import FieldDefinition, FieldType, RecordDefinition, RecordType
from goldcast_cog.steps.base import (
    EXPECTATION_FIELD,
    OPERATOR_EXPRESSION,
    OPERATOR_FIELD,
    FieldCheckStep,
    StepFailure,
)


class EventMemberFieldEqualsStep(FieldCheckStep):
    step_name = "Check a field on a Goldcast event member"
    step_expression = (
        "the (?<field>[a-zA-Z0-9_-]+) field on goldcast event member (?<eventId>[a-zA-Z0-9_-]+) should "
        + OPERATOR_EXPRESSION
    )
    action_list = ["check"]
    target_object = "Event Member"
    expected_fields = [
        FieldDefinition(key="eventId", type=FieldType.STRING, description="Event ID"),
        FieldDefinition(key="field", type=FieldType.STRING, description="Field name to check"),
        OPERATOR_FIELD,
        EXPECTATION_FIELD,
    ]
    expected_records = [
        RecordDefinition(
            id="member",
            type=RecordType.KEYVALUE,
            guaranteed_fields=[
                FieldDefinition(key="firstName", type=FieldType.STRING, description="Member's First Name"),
                FieldDefinition(key="lastName", type=FieldType.STRING, description="Member's Last Name"),
                FieldDefinition(key="email", type=FieldType.STRING, description="Member's Email"),
            ],
            may_have_more_fields=True,
        ),
    ]

    record_id = "member"
    record_label = "Event Member"
    id_field = "eventId"
    missing_field_message = "Found the member with event id %s, but there was no %s field."
    generic_error_message = "There was an error during validation of member field: %s"

    async def locate(self, data: dict[str, Any]) -> dict[str, Any]:
        event_id = str(data["eventId"])
        member = self.load(await self.client.fetch_by_id("event_members", event_id))
        if not member or not isinstance(member, dict):
            raise StepFailure("Couldn't find a member associated with event id %s", [event_id])
        return member
