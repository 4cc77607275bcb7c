# models.py
# Data contracts for the Cog wire protocol.
# No business logic lives here: pure schema and validation.

from enum import IntEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ---------------------------------------------------------------------------
# Enums (values mirror the host framework's wire contract)
# ---------------------------------------------------------------------------


class StepType(IntEnum):
    ACTION = 0
    VALIDATION = 1


class FieldOptionality(IntEnum):
    OPTIONAL = 0
    REQUIRED = 1


class FieldType(IntEnum):
    ANYSCALAR = 0
    STRING = 1
    BOOLEAN = 2
    NUMERIC = 3
    DATE = 4
    DATETIME = 5
    EMAIL = 6
    PHONE = 7
    ANYNONSCALAR = 8
    MAP = 9
    URL = 10


class RecordType(IntEnum):
    KEYVALUE = 0
    TABLE = 1
    BINARY = 2


class Outcome(IntEnum):
    PASSED = 0
    FAILED = 1
    ERROR = 2


# ---------------------------------------------------------------------------
# Definitions (static, built once at registration)
# ---------------------------------------------------------------------------


class FieldDefinition(BaseModel):
    """An input field a step expects, or a field guaranteed on a record."""

    model_config = ConfigDict(frozen=True)

    key: str
    type: FieldType = FieldType.STRING
    optionality: FieldOptionality = FieldOptionality.REQUIRED
    description: str = ""
    help: str = ""


class RecordDefinition(BaseModel):
    """Schema of a record returned alongside a step result."""

    model_config = ConfigDict(frozen=True)

    id: str
    type: RecordType = RecordType.KEYVALUE
    guaranteed_fields: tuple[FieldDefinition, ...] = ()
    may_have_more_fields: bool = False


class StepDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    step_id: str
    name: str
    help: str = ""
    type: StepType = StepType.VALIDATION
    expression: str = Field(..., description="Trigger pattern with named capture groups.")
    expected_fields: tuple[FieldDefinition, ...] = ()
    expected_records: tuple[RecordDefinition, ...] = ()
    action: tuple[str, ...] = ()
    target_object: str = ""


class CogManifest(BaseModel):
    name: str
    label: str
    version: str
    homepage: str = ""
    step_definitions: list[StepDefinition] = Field(default_factory=list)
    auth_fields: list[FieldDefinition] = Field(default_factory=list)
    auth_help_url: str = ""


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class Step(BaseModel):
    """A single step dispatched by the host: an id plus its opaque data bag."""

    step_id: str
    data: dict[str, Any] = Field(default_factory=dict)


class RunStepRequest(BaseModel):
    step: Step
    request_id: str = ""
    scenario_id: str = ""
    requestor_id: str = ""


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class TableRecord(BaseModel):
    headers: dict[str, Any] = Field(default_factory=dict)
    rows: list[dict[str, Any]] = Field(default_factory=list)


class BinaryRecord(BaseModel):
    data: bytes = b""
    mime_type: str = ""


class StepRecord(BaseModel):
    """A named snapshot attached to a step result. Exactly one value variant is set."""

    id: str
    name: str
    key_value: dict[str, Any] | None = None
    table: TableRecord | None = None
    binary: BinaryRecord | None = None

    @model_validator(mode="after")
    def _one_variant(self) -> "StepRecord":
        variants = [v for v in (self.key_value, self.table, self.binary) if v is not None]
        if len(variants) != 1:
            raise ValueError("A StepRecord carries exactly one of key_value, table or binary.")
        return self


class RunStepResponse(BaseModel):
    outcome: Outcome
    message_format: str = ""
    message_args: list[Any] = Field(default_factory=list)
    records: list[StepRecord] = Field(default_factory=list)
    response_data: dict[str, Any] | None = None

    def rendered_message(self) -> str:
        """Apply message_args to the printf-style message_format."""
        if not self.message_args:
            return self.message_format.replace("%%", "%")
        try:
            return self.message_format % tuple(self.message_args)
        except (TypeError, ValueError):
            return f"{self.message_format} {self.message_args}"
