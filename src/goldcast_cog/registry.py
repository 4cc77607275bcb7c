# registry.py
# Step registry: the static table from step id to step class.
#
# Built once at startup. Registration compiles each step's trigger expression
# and refuses a step whose named capture groups differ from its declared
# expected fields, so a mismatch surfaces at boot, not mid-scenario.

import logging
import re
from typing import NamedTuple

from goldcast_cog.client import ClientWrapper, ResourceFetcher
from goldcast_cog.models import CogManifest, Outcome, RunStepRequest, RunStepResponse, Step, StepDefinition
from goldcast_cog.steps.base import BaseStep
from goldcast_cog.steps.event_field_equals import EventFieldEqualsStep
from goldcast_cog.steps.event_member_field_equals import EventMemberFieldEqualsStep
from goldcast_cog.steps.event_registrant_field_equals import EventRegistrantFieldEqualsStep

logger = logging.getLogger(__name__)

COG_NAME = "automatoninc/goldcast"
COG_LABEL = "Goldcast"
COG_VERSION = "0.1.0"
COG_HOMEPAGE = "https://github.com/run-crank/cog-goldcast"
COG_AUTH_HELP_URL = "https://customapi.goldcast.io/docs"

STEPS: list[type[BaseStep]] = [
    EventFieldEqualsStep,
    EventMemberFieldEqualsStep,
    EventRegistrantFieldEqualsStep,
]

# JS-style named groups, not lookbehinds.
_JS_NAMED_GROUP = re.compile(r"\(\?<(?=[A-Za-z_])")


class RegistrationError(Exception):
    """Raised at startup when a step's declaration is inconsistent."""


class RegisteredStep(NamedTuple):
    step_class: type[BaseStep]
    definition: StepDefinition
    pattern: re.Pattern


def compile_expression(expression: str) -> re.Pattern:
    """Compile a host-style trigger expression, translating (?<name>) groups."""
    return re.compile(_JS_NAMED_GROUP.sub("(?P<", expression), re.IGNORECASE)


class StepRegistry:
    """
    Maps step ids to step classes and dispatches requests to them.

    Example:
        registry = StepRegistry(STEPS)
        response = await registry.dispatch(request, client)
    """

    def __init__(self, steps: list[type[BaseStep]] | None = None) -> None:
        self._steps: dict[str, RegisteredStep] = {}
        for step_class in steps or []:
            self.register(step_class)

    def register(self, step_class: type[BaseStep]) -> None:
        definition = step_class.get_definition()
        if definition.step_id in self._steps:
            raise RegistrationError(f"Step '{definition.step_id}' is already registered.")

        try:
            pattern = compile_expression(definition.expression)
        except re.error as exc:
            raise RegistrationError(f"Step '{definition.step_id}' has an invalid expression: {exc}") from exc

        groups = set(pattern.groupindex)
        keys = {field.key for field in definition.expected_fields}
        if groups != keys:
            raise RegistrationError(
                f"Step '{definition.step_id}' capture groups {sorted(groups)} "
                f"do not match its expected fields {sorted(keys)}."
            )

        self._steps[definition.step_id] = RegisteredStep(step_class, definition, pattern)
        logger.debug("Registered step %s", definition.step_id)

    def __contains__(self, step_id: str) -> bool:
        return step_id in self._steps

    @property
    def definitions(self) -> list[StepDefinition]:
        return [entry.definition for entry in self._steps.values()]

    def manifest(self) -> CogManifest:
        return CogManifest(
            name=COG_NAME,
            label=COG_LABEL,
            version=COG_VERSION,
            homepage=COG_HOMEPAGE,
            step_definitions=self.definitions,
            auth_fields=ClientWrapper.expected_auth_fields,
            auth_help_url=COG_AUTH_HELP_URL,
        )

    def match(self, sentence: str) -> Step | None:
        """Resolve a natural-language step sentence to a Step, or None."""
        text = sentence.strip()
        for step_id, entry in self._steps.items():
            found = entry.pattern.fullmatch(text)
            if found:
                data = {k: v.strip() for k, v in found.groupdict().items() if v is not None}
                # Sentences match case-insensitively; the comparator only knows lowercase names.
                if "operator" in data:
                    data["operator"] = data["operator"].lower()
                return Step(step_id=step_id, data=data)
        return None

    async def dispatch(self, request: RunStepRequest, client: ResourceFetcher) -> RunStepResponse:
        """Run the requested step. Always returns a response, never raises."""
        step_id = request.step.step_id
        entry = self._steps.get(step_id)
        if entry is None:
            logger.warning("No step registered under %s", step_id)
            return RunStepResponse(
                outcome=Outcome.ERROR,
                message_format="Unknown step %s",
                message_args=[step_id],
            )

        try:
            return await entry.step_class(client).execute_step(request.step)
        except Exception as exc:
            logger.exception("Step %s raised outside its own error handling", step_id)
            return RunStepResponse(
                outcome=Outcome.ERROR,
                message_format="There was an error running this step: %s",
                message_args=[str(exc)],
            )
