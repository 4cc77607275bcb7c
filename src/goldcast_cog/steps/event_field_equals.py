# event_field_equals.py
# "the <field> field on goldcast event <eventId> should <operator> <expectation>"

from typing import Any

from goldcast_cog.models import FieldDefinition, FieldType, RecordDefinition, RecordType
from goldcast_cog.steps.base import (
    EXPECTATION_FIELD,
    OPERATOR_EXPRESSION,
    OPERATOR_FIELD,
    FieldCheckStep,
    StepFailure,
)


class EventFieldEqualsStep(FieldCheckStep):
    step_name = "Check a field on a Goldcast Event"
    step_expression = (
        "the (?<field>[a-zA-Z0-9_-]+) field on goldcast event (?<eventId>[a-zA-Z0-9_-]+) should "
        + OPERATOR_EXPRESSION
    )
    action_list = ["check"]
    target_object = "Event"
    expected_fields = [
        FieldDefinition(key="eventId", type=FieldType.STRING, description="Event ID"),
        FieldDefinition(key="field", type=FieldType.STRING, description="Field name to check"),
        OPERATOR_FIELD,
        EXPECTATION_FIELD,
    ]
    expected_records = [
        RecordDefinition(
            id="event",
            type=RecordType.KEYVALUE,
            guaranteed_fields=[
                FieldDefinition(key="id", type=FieldType.STRING, description="Event ID"),
                FieldDefinition(key="title", type=FieldType.STRING, description="Title"),
                FieldDefinition(key="description", type=FieldType.STRING, description="Description"),
                FieldDefinition(key="event_type", type=FieldType.STRING, description="Event Type"),
            ],
            may_have_more_fields=True,
        ),
    ]

    record_id = "event"
    record_label = "Event"
    id_field = "eventId"
    missing_field_message = "Found the event with id %s, but there was no %s field."
    generic_error_message = "There was an error while validating this event field: %s"

    async def locate(self, data: dict[str, Any]) -> dict[str, Any]:
        event_id = str(data["eventId"])
        events = self.load(await self.client.fetch_collection("events")) or []
        if isinstance(events, dict):
            # Paginated responses wrap the list.
            events = events.get("results") or []

        matches = [e for e in events if isinstance(e, dict) and str(e.get("id")) == event_id]
        if not matches:
            raise StepFailure("Couldn't find an event with id %s", [event_id])
        if len(matches) > 1:
            raise StepFailure("Found more than one record with id %s", [event_id])
        return matches[0]
