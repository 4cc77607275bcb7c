# base.py
# Shared machinery for every step: definition building, input extraction,
# outcome envelopes and record builders.
#
# FieldCheckStep holds the one algorithm all "field ... should <operator>"
# steps share. Concrete steps only say how to locate their entity.

import json
import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from goldcast_cog.client import ResourceFetcher, parse_json
from goldcast_cog.models import (
    FieldDefinition,
    FieldOptionality,
    FieldType,
    Outcome,
    RecordDefinition,
    RunStepResponse,
    Step,
    StepDefinition,
    StepRecord,
    StepType,
)
from goldcast_cog.operators import (
    OPERATORS,
    PRESENCE_OPERATORS,
    InvalidOperandError,
    UnknownOperatorError,
    compare,
)

logger = logging.getLogger(__name__)

OPERATOR_EXPRESSION = (
    "(?<operator>be set|not be set|be less than|be greater than|be one of|be|contain"
    "|not be one of|not be|not contain|match|not match) ?(?<expectation>.+)?"
)

OPERATOR_FIELD = FieldDefinition(
    key="operator",
    type=FieldType.STRING,
    optionality=FieldOptionality.OPTIONAL,
    description=f"Check Logic ({', '.join(OPERATORS[:-1])}, or {OPERATORS[-1]})",
)

EXPECTATION_FIELD = FieldDefinition(
    key="expectation",
    type=FieldType.ANYSCALAR,
    optionality=FieldOptionality.OPTIONAL,
    description="Expected field value",
)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class StepInputError(Exception):
    """Raised when step data is missing a required field."""


class StepFailure(Exception):
    """Raised while locating an entity when the assertion itself has failed."""

    def __init__(self, message_format: str, message_args: list[Any] | None = None) -> None:
        super().__init__(message_format)
        self.message_format = message_format
        self.message_args = message_args or []


def literal(text: str) -> str:
    """Escape text for use as a message_format with no arguments."""
    return text.replace("%", "%%")


# ---------------------------------------------------------------------------
# BaseStep
# ---------------------------------------------------------------------------


class BaseStep(ABC):
    """A single step the Cog can run. Subclasses declare the class attributes."""

    step_name: str
    step_expression: str
    step_type: StepType = StepType.VALIDATION
    action_list: list[str] = []
    target_object: str = ""
    expected_fields: list[FieldDefinition] = []
    expected_records: list[RecordDefinition] = []

    def __init__(self, client: ResourceFetcher) -> None:
        self.client = client

    @classmethod
    def get_definition(cls) -> StepDefinition:
        return StepDefinition(
            step_id=cls.__name__,
            name=cls.step_name,
            type=cls.step_type,
            expression=cls.step_expression,
            expected_fields=cls.expected_fields,
            expected_records=cls.expected_records,
            action=cls.action_list,
            target_object=cls.target_object,
        )

    @abstractmethod
    async def execute_step(self, step: Step) -> RunStepResponse: ...

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def step_data(self, step: Step) -> dict[str, Any]:
        """
        Copy the step's data bag, checking every required field is present.

        Raises StepInputError naming the first absent required field.
        """
        data = dict(step.data or {})
        for field in self.expected_fields:
            if field.optionality == FieldOptionality.REQUIRED and data.get(field.key) in (None, ""):
                raise StepInputError(f"The {field.key} field is required. Please provide one.")
        return data

    # ------------------------------------------------------------------
    # Outcomes
    # ------------------------------------------------------------------

    def pass_(self, message: str, args: list[Any] | None = None, records: list[StepRecord] | None = None) -> RunStepResponse:
        return self._outcome(Outcome.PASSED, message, args, records)

    def fail(self, message: str, args: list[Any] | None = None, records: list[StepRecord] | None = None) -> RunStepResponse:
        return self._outcome(Outcome.FAILED, message, args, records)

    def error(self, message: str, args: list[Any] | None = None, records: list[StepRecord] | None = None) -> RunStepResponse:
        return self._outcome(Outcome.ERROR, message, args, records)

    @staticmethod
    def _outcome(
        outcome: Outcome, message: str, args: list[Any] | None, records: list[StepRecord] | None
    ) -> RunStepResponse:
        return RunStepResponse(
            outcome=outcome,
            message_format=message,
            message_args=list(args or []),
            records=list(records or []),
        )

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    @staticmethod
    def key_value(record_id: str, name: str, data: dict[str, Any]) -> StepRecord:
        return StepRecord(id=record_id, name=name, key_value=dict(data))


# ---------------------------------------------------------------------------
# FieldCheckStep
# ---------------------------------------------------------------------------


class FieldCheckStep(BaseStep):
    """
    Check one field of one remote entity against an operator and expectation.

    Subclasses implement `locate`, returning the entity or raising
    StepFailure when it can't be found (uniquely), and set:
        record_id      id of the base record (the ordered one is "<id>.<n>")
        record_label   human label, e.g. "Event"
        id_field       step data key that identifies the entity, for messages
        missing_field_message / generic_error_message
    """

    record_id: str
    record_label: str
    id_field: str
    missing_field_message: str = "Found the resource with id %s, but there was no %s field."
    generic_error_message: str = "There was an error while validating this field: %s"

    @abstractmethod
    async def locate(self, data: dict[str, Any]) -> dict[str, Any]: ...

    @staticmethod
    def load(payload: Any) -> Any:
        return parse_json(payload)

    def create_records(self, entity: dict[str, Any], step_order: int = 1) -> list[StepRecord]:
        return [
            self.key_value(self.record_id, f"Checked {self.record_label}", entity),
            self.key_value(
                f"{self.record_id}.{step_order}",
                f"Checked {self.record_label} from Step {step_order}",
                entity,
            ),
        ]

    async def execute_step(self, step: Step) -> RunStepResponse:
        try:
            data = self.step_data(step)
        except StepInputError as exc:
            return self.error(literal(str(exc)))

        operator: str = data.get("operator") or "be"
        expectation = data.get("expectation")
        field = data["field"]
        identifier = data.get(self.id_field)

        if expectation is None and operator not in PRESENCE_OPERATORS:
            return self.error("The operator '%s' requires an expected value. Please provide one.", [operator])

        try:
            entity = await self.locate(data)
            records = self.create_records(entity, int(data.get("__stepOrder") or 1))

            if field not in entity:
                return self.fail(self.missing_field_message, [identifier, field], records)

            result = compare(operator, entity[field], expectation, field)
            if result.valid:
                return self.pass_(literal(result.message), [], records)
            return self.fail(literal(result.message), [], records)

        except StepFailure as exc:
            return self.fail(exc.message_format, exc.message_args)
        except UnknownOperatorError as exc:
            return self.error("%s Please provide one of: %s", [str(exc), ", ".join(OPERATORS)])
        except InvalidOperandError as exc:
            return self.error(literal(str(exc)))
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code == 404:
                return self.error(
                    f"{literal(_remote_description(exc.response))}: %s",
                    [json.dumps({self.id_field: identifier})],
                )
            logger.warning("%s: HTTP %s from Goldcast", type(self).__name__, exc.response.status_code)
            return self.error(self.generic_error_message, [str(exc)])
        except Exception as exc:
            logger.exception("%s raised while checking %s", type(self).__name__, field)
            return self.error(self.generic_error_message, [str(exc)])


def _remote_description(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("description"):
        return str(body["description"])
    return response.reason_phrase or "Not Found"
