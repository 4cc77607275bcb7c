import pytest

from goldcast_cog.operators import (
    OPERATORS,
    ComparisonResult,
    InvalidOperandError,
    UnknownOperatorError,
    compare,
)

# ---------------------------------------------------------------------------
# Presence Operators
# ---------------------------------------------------------------------------

def test_be_set_with_null_actual_fails():
    assert compare("be set", None, None, "f").valid is False

def test_be_set_with_value_passes():
    assert compare("be set", "x", None, "f").valid is True

def test_not_be_set_with_empty_string_passes():
    assert compare("not be set", "", None, "f").valid is True

def test_not_be_set_with_value_fails():
    result = compare("not be set", "x", None, "f")
    assert result.valid is False
    assert "x" in result.message

def test_be_set_rejects_expected_value():
    with pytest.raises(InvalidOperandError):
        compare("be set", "x", "y", "f")

def test_not_be_set_rejects_expected_value():
    with pytest.raises(InvalidOperandError):
        compare("not be set", None, "", "f")

# ---------------------------------------------------------------------------
# Operator Validation
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("operator", ["equals", "BE", "", "be  set", "greater than"])
def test_unknown_operator(operator):
    with pytest.raises(UnknownOperatorError, match="Unknown operator"):
        compare(operator, "a", "a", "f")

def test_every_declared_operator_is_accepted():
    for operator in OPERATORS:
        expected = None if operator.endswith("be set") else "1"
        assert isinstance(compare(operator, "1", expected, "f"), ComparisonResult)

# ---------------------------------------------------------------------------
# Equality
# ---------------------------------------------------------------------------

def test_be_matching_strings():
    result = compare("be", "Expected Value", "Expected Value", "someField")
    assert result.valid is True
    assert "someField" in result.message

def test_be_is_case_sensitive():
    assert compare("be", "Webinar", "webinar", "event_type").valid is False

def test_be_numeric_strings_compare_numerically():
    assert compare("be", "10.0", "10", "f").valid is True
    assert compare("be", 10, "10", "f").valid is True

def test_be_large_integer_strings_are_exact():
    assert compare("be", "12345678901234567890123", "12345678901234567890124", "id").valid is False
    assert compare("be", "12345678901234567890123", "12345678901234567890123", "id").valid is True

def test_be_booleans_against_text():
    assert compare("be", True, "true", "is_live").valid is True

def test_not_be():
    assert compare("not be", "a", "b", "f").valid is True
    assert compare("not be", "a", "a", "f").valid is False

def test_failure_message_embeds_field_actual_and_expected():
    result = compare("be", "Actual", "Wanted", "title")
    assert result.valid is False
    for part in ("title", "Actual", "Wanted"):
        assert part in result.message

# ---------------------------------------------------------------------------
# Containment
# ---------------------------------------------------------------------------

def test_contain_substring():
    assert compare("contain", "Quarterly Product Webinar", "Product", "title").valid is True
    assert compare("contain", "Quarterly Product Webinar", "product", "title").valid is False

def test_contain_list_element():
    assert compare("contain", ["a", "b", "42"], "42", "tags").valid is True
    assert compare("contain", ["a", "b"], "c", "tags").valid is False

def test_not_contain():
    assert compare("not contain", "abc", "z", "f").valid is True
    assert compare("not contain", None, "z", "f").valid is True

# ---------------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------------

def test_greater_than_is_numeric_not_lexical():
    assert compare("be greater than", "10", "9", "f").valid is True

def test_less_than():
    assert compare("be less than", 3, "3.5", "f").valid is True
    assert compare("be less than", "4", "3.5", "f").valid is False

def test_ordering_on_dates():
    assert compare("be greater than", "2024-05-02T10:00:00Z", "2024-05-01", "start_time").valid is True

def test_ordering_rejects_non_numeric_operands():
    with pytest.raises(InvalidOperandError, match="numbers or dates"):
        compare("be greater than", "abc", "9", "f")

# ---------------------------------------------------------------------------
# Set Membership
# ---------------------------------------------------------------------------

def test_be_one_of_comma_and_newline_separated():
    assert compare("be one of", "Webinar", "Meetup, Webinar\nSummit", "event_type").valid is True
    assert compare("be one of", "Expo", "Meetup, Webinar\nSummit", "event_type").valid is False

def test_be_one_of_numeric_tokens():
    assert compare("be one of", 2, "1,2,3", "f").valid is True

def test_not_be_one_of():
    assert compare("not be one of", "Expo", "Meetup,Webinar", "f").valid is True

def test_be_one_of_rejects_non_list_expectation():
    with pytest.raises(InvalidOperandError):
        compare("be one of", "1", 1, "f")

# ---------------------------------------------------------------------------
# Regular Expressions
# ---------------------------------------------------------------------------

def test_match():
    assert compare("match", "demo-2024", r"^demo-\d{4}$", "slug").valid is True
    assert compare("not match", "demo-2024", r"^prod", "slug").valid is True

def test_match_coerces_actual_to_string():
    assert compare("match", 12345, r"^\d+$", "f").valid is True

def test_match_rejects_bad_expression():
    with pytest.raises(InvalidOperandError, match="regular expression"):
        compare("match", "abc", "(unclosed", "f")

# ---------------------------------------------------------------------------
# Determinism
# ---------------------------------------------------------------------------

@pytest.mark.parametrize(
    "operator,actual,expected",
    [
        ("be", "a", "b"),
        ("contain", "abc", "b"),
        ("be greater than", "10", "9"),
        ("be one of", "x", "x, y"),
        ("match", "abc", "b"),
        ("be set", "x", None),
    ],
)
def test_compare_is_deterministic(operator, actual, expected):
    assert compare(operator, actual, expected, "f") == compare(operator, actual, expected, "f")
