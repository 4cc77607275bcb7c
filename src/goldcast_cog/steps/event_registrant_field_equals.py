# event_registrant_field_equals.py
# "the <field> field on goldcast registrant <email> of event <eventId> should <operator> <expectation>"

from typing import Any

from goldcast_cog.models import FieldDefinition, FieldType, RecordDefinition, RecordType
from goldcast_cog.steps.base import (
    EXPECTATION_FIELD,
    OPERATOR_EXPRESSION,
    OPERATOR_FIELD,
    FieldCheckStep,
    StepFailure,
)


class EventRegistrantFieldEqualsStep(FieldCheckStep):
    step_name = "Check a field on a Goldcast event registrant"
    step_expression = (
        "the (?<field>[a-zA-Z0-9_-]+) field on goldcast registrant (?<email>[^\\s]+@[^\\s]+) "
        "of event (?<eventId>[a-zA-Z0-9_-]+) should " + OPERATOR_EXPRESSION
    )
    action_list = ["check"]
    target_object = "Event Registrant"
    expected_fields = [
        FieldDefinition(key="email", type=FieldType.STRING, description="Registrant's Email Address"),
        FieldDefinition(key="eventId", type=FieldType.STRING, description="Event ID"),
        FieldDefinition(key="field", type=FieldType.STRING, description="Field name to check"),
        OPERATOR_FIELD,
        EXPECTATION_FIELD,
    ]
    expected_records = [
        RecordDefinition(
            id="registrant",
            type=RecordType.KEYVALUE,
            guaranteed_fields=[
                FieldDefinition(key="email", type=FieldType.STRING, description="Registrant's Email"),
                FieldDefinition(key="first_name", type=FieldType.STRING, description="Registrant's First Name"),
                FieldDefinition(key="last_name", type=FieldType.STRING, description="Registrant's Last Name"),
            ],
            may_have_more_fields=True,
        ),
    ]

    record_id = "registrant"
    record_label = "Event Registrant"
    id_field = "email"
    missing_field_message = "Found the registrant with email %s, but there was no %s field."
    generic_error_message = "There was an error during validation of registrant field: %s"

    async def locate(self, data: dict[str, Any]) -> dict[str, Any]:
        email = str(data["email"]).strip().lower()
        event_id = str(data["eventId"])
        registrants = self.load(await self.client.fetch_collection("event_registrants", event_id)) or []
        if isinstance(registrants, dict):
            registrants = registrants.get("results") or []

        matches = [
            r for r in registrants
            if isinstance(r, dict) and str(r.get("email") or "").strip().lower() == email
        ]
        if not matches:
            raise StepFailure("Couldn't find a registrant with email %s on event %s", [email, event_id])
        if len(matches) > 1:
            raise StepFailure("Found more than one registrant with email %s on event %s", [email, event_id])
        return matches[0]
