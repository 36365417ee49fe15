"""
Tests for the validation engine.
"""

import pytest

from formstudio.services.validation import (
    REQUIRED_FIELD,
    REQUIRED_ITEMS,
    REQUIRED_SECTION,
    is_valid_date,
    is_valid_time,
    is_valid_url,
    parse_number,
    validate_form,
    validate_value,
)


@pytest.fixture
def typed_template(build_template, raw_property):
    return build_template(
        [
            raw_property("Flag", "xs:boolean"),
            raw_property("Day", "xs:date"),
            raw_property("Stamp", "xs:dateTime"),
            raw_property("Clock", "xs:time"),
            raw_property("Count", "xs:integer"),
            raw_property("Small", "xs:unsignedByte"),
            raw_property("Ratio", "xs:double"),
            raw_property(
                "Code",
                qualifiers=[
                    {"type": "SMT/MinLength", "value": "2"},
                    {"type": "SMT/MaxLength", "value": "4"},
                    {"type": "SMT/Pattern", "value": "[A-Z]+"},
                ],
            ),
            raw_property("Broken", qualifiers=[{"type": "SMT/Pattern", "value": "[unclosed"}]),
            {"idShort": "Span", "modelType": "Range", "valueType": "xs:double"},
        ]
    )


class TestHelpers:
    """Tests for the primitive checks."""

    def test_parse_number(self):
        """Test numeric parsing."""
        assert parse_number("12.5") == parse_number(12.5)
        assert parse_number(" 3 ") == 3
        assert parse_number(True) is None
        assert parse_number("abc") is None
        assert parse_number("NaN") is None
        assert parse_number(float("inf")) is None

    def test_dates_and_times(self):
        """Test date and time formats."""
        assert is_valid_date("2024-02-29")
        assert not is_valid_date("2023-02-29")
        assert not is_valid_date("2024-2-1")
        assert is_valid_time("23:59")
        assert is_valid_time("08:15:30.5")
        assert not is_valid_time("24:00")

    def test_urls(self):
        """Test URL checks."""
        assert is_valid_url("https://example.com/a?b=c")
        assert not is_valid_url("not a url")


class TestValidateValue:
    """Tests for single value validation."""

    def test_empty_values_pass(self, typed_template):
        """Test that empty values are never errors."""
        element = typed_template.find_element("Count")
        assert validate_value(element, None) is None
        assert validate_value(element, "") is None

    def test_boolean(self, typed_template):
        """Test boolean values."""
        element = typed_template.find_element("Flag")
        assert validate_value(element, True) is None
        assert validate_value(element, "yes") == "Expected a boolean value"

    def test_dates(self, typed_template):
        """Test date, date-time and time values."""
        assert validate_value(typed_template.find_element("Day"), "2024-01-31") is None
        assert validate_value(typed_template.find_element("Day"), "31.01.2024") == "Expected a valid date"
        assert validate_value(typed_template.find_element("Stamp"), "2024-01-31T10:00:00") is None
        assert validate_value(typed_template.find_element("Stamp"), "soon") == "Expected a valid date/time"
        assert validate_value(typed_template.find_element("Clock"), "25:00") == "Expected a valid time"

    def test_integer(self, typed_template):
        """Test integer values and numeric strings."""
        element = typed_template.find_element("Count")
        assert validate_value(element, 5) is None
        assert validate_value(element, "42") is None
        assert validate_value(element, 4.0) is None
        assert validate_value(element, 4.5) == "Expected an integer"
        assert validate_value(element, "four") == "Expected an integer"

    def test_intrinsic_integer_bounds(self, typed_template):
        """Test the bounds of a bounded integer type."""
        element = typed_template.find_element("Small")
        assert validate_value(element, 0) is None
        assert validate_value(element, 255) is None
        assert validate_value(element, 256) == "Maximum value is 255"
        assert validate_value(element, -1) == "Minimum value is 0"

    @pytest.mark.parametrize(
        "value,expected",
        [
            (1900, None),
            (2100, None),
            (2000, None),
            (1899, "Minimum value is 1900"),
            (2101, "Maximum value is 2100"),
        ],
    )
    def test_declared_bounds_inclusive(self, sample_template, value, expected):
        """Test that declared bounds are inclusive."""
        element = sample_template.find_element("YearOfConstruction")
        assert validate_value(element, value) == expected

    def test_decimal(self, typed_template):
        """Test decimal values."""
        element = typed_template.find_element("Ratio")
        assert validate_value(element, "0.25") is None
        assert validate_value(element, "n/a") == "Expected a number"

    def test_string_constraints(self, typed_template):
        """Test length and pattern constraints."""
        element = typed_template.find_element("Code")
        assert validate_value(element, "ABC") is None
        assert validate_value(element, "A") == "Minimum length is 2"
        assert validate_value(element, "ABCDE") == "Maximum length is 4"
        assert validate_value(element, "AB1") == "Value does not match required pattern"

    def test_invalid_pattern_is_ignored(self, typed_template):
        """Test that an unusable pattern does not reject values."""
        assert validate_value(typed_template.find_element("Broken"), "anything") is None

    def test_allowed_values(self, sample_template):
        """Test select values."""
        element = sample_template.find_element("Status")
        assert validate_value(element, "active") is None
        assert validate_value(element, "retired") == "Value must be one of: active, inactive"

    def test_url(self, sample_template):
        """Test URL properties."""
        element = sample_template.find_element("Website")
        assert validate_value(element, "https://example.com") is None
        assert validate_value(element, "example") == "Expected a valid URL"

    def test_multilanguage(self, sample_template):
        """Test multi-language structure."""
        element = sample_template.find_element("ManufacturerName")
        assert validate_value(element, [{"language": "en", "text": "ACME"}]) is None
        assert validate_value(element, "ACME") == "Expected translations"
        assert (
            validate_value(element, [{"language": "en", "text": ""}])
            == "Translation must include language and text"
        )

    def test_range(self, typed_template):
        """Test range structure and ordering."""
        element = typed_template.find_element("Span")
        assert validate_value(element, {"min": 1, "max": 2}) is None
        assert validate_value(element, {"min": 1, "max": None}) is None
        assert validate_value(element, {"min": "x", "max": 2}) == "Minimum must be a number"
        assert validate_value(element, {"min": 3, "max": 2}) == "Minimum cannot exceed maximum"
        assert validate_value(element, 5) == "Expected range values"


class TestValidateForm:
    """Tests for whole-form validation."""

    def test_empty_form(self, sample_template):
        """Test that only required fields are reported on an empty form."""
        errors = validate_form(sample_template, {}, {})
        assert errors == {"SerialNumber": REQUIRED_FIELD}

    def test_filled_form_is_valid(self, sample_template, filled_values):
        """Test that a complete value map has no errors."""
        array_items = {"Tags": [0, 1], "Measurements": [0, 1], "Readings": [0], "Documents": [0]}
        assert validate_form(sample_template, filled_values, array_items) == {}

    def test_optional_group_with_value_checks_children(self, sample_template):
        """Test that children of a present optional group are required."""
        errors = validate_form(
            sample_template, {"SerialNumber": "SN-1", "Address.City": "Berlin"}, {}
        )
        assert errors == {"Address.Street": REQUIRED_FIELD}

    def test_repeated_group_items_are_checked(self, sample_template):
        """Test required children of every live item."""
        values = {"SerialNumber": "SN-1", "Measurements.0.Value": 1}
        errors = validate_form(sample_template, values, {"Measurements": [0, 3]})
        assert errors == {"Measurements.3.Value": REQUIRED_FIELD}

    def test_declared_list_of_groups(self, sample_template):
        """Test required children of declared list items."""
        errors = validate_form(sample_template, {"SerialNumber": "SN-1"}, {"Documents": [0]})
        assert errors == {"Documents.0.Title": REQUIRED_FIELD}

    def test_value_errors_use_concrete_keys(self, sample_template):
        """Test that per-value errors are keyed by the concrete path."""
        values = {"SerialNumber": "SN-1", "Measurements.2.Value": "abc"}
        errors = validate_form(sample_template, values, {"Measurements": [2]})
        assert errors == {"Measurements.2.Value": "Expected a number"}

    def test_required_groups_and_lists(self, build_template, raw_property, raw_collection):
        """Test required sections, required lists and required leaf arrays."""
        template = build_template(
            [
                raw_collection("Contact", [raw_property("Email", card="One")], card="One"),
                raw_property("Phones", card="OneToMany"),
                raw_collection("Sites", [raw_property("Name")], card="OneToMany"),
            ]
        )
        errors = validate_form(template, {}, {"Phones": [0]})
        assert errors == {
            "Contact": REQUIRED_SECTION,
            "Contact.Email": REQUIRED_FIELD,
            "Phones.0": REQUIRED_FIELD,
            "Sites": REQUIRED_ITEMS,
        }

    def test_required_translations_and_ranges(self, build_template, raw_property):
        """Test that empty translation lists and bound-less ranges count as missing."""
        template = build_template(
            [
                raw_property("Name", card="One", modelType="MultiLanguageProperty"),
                raw_property("Span", "xs:double", card="One", modelType="Range"),
            ]
        )
        values = {"Name": [], "Span": {"min": None, "max": None}}
        assert validate_form(template, values, {}) == {
            "Name": REQUIRED_FIELD,
            "Span": REQUIRED_FIELD,
        }

        values = {"Name": [{"language": "en", "text": "Pump"}], "Span": {"min": "", "max": 5}}
        assert validate_form(template, values, {}) == {}

    def test_unknown_keys_are_ignored(self, sample_template):
        """Test that values without an element are skipped."""
        errors = validate_form(sample_template, {"SerialNumber": "SN-1", "Ghost": 1}, {})
        assert errors == {}
