import pytest
from pydantic import ValidationError

from goldcast_cog.models import BinaryRecord, Outcome, RunStepResponse, StepRecord

# ---------------------------------------------------------------------------
# Message Rendering
# ---------------------------------------------------------------------------

def test_rendered_message_applies_args():
    response = RunStepResponse(
        outcome=Outcome.FAILED,
        message_format="Found the event with id %s, but there was no %s field.",
        message_args=["42", "title"],
    )
    assert response.rendered_message() == "Found the event with id 42, but there was no title field."

def test_rendered_message_unescapes_percent_without_args():
    response = RunStepResponse(outcome=Outcome.PASSED, message_format="Discount was 50%% off")
    assert response.rendered_message() == "Discount was 50% off"

def test_rendered_message_tolerates_bad_args():
    response = RunStepResponse(outcome=Outcome.ERROR, message_format="%d items", message_args=["many"])
    assert "many" in response.rendered_message()

# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

def test_step_record_requires_exactly_one_variant():
    with pytest.raises(ValidationError):
        StepRecord(id="event", name="Checked Event")
    with pytest.raises(ValidationError):
        StepRecord(id="event", name="Checked Event", key_value={}, binary=BinaryRecord())

def test_step_record_key_value():
    record = StepRecord(id="event", name="Checked Event", key_value={"id": "42"})
    assert record.key_value == {"id": "42"}
