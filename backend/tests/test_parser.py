"""
Tests for the Parser service.
"""

import pytest

from formstudio.schemas.template import Cardinality, ElementKind, InputKind
from formstudio.services.parser import (
    LIST_ITEM_ID_SHORT,
    PLACEHOLDER_ID_SHORT,
    TemplateParseError,
    TemplateParserService,
    count_elements,
    elements_by_input_kind,
    extract_cardinality,
    extract_constraints,
    extract_semantic_ids,
    find_element,
    normalize_cardinality_value,
    required_elements,
    resolve_input_kind,
)


class TestParserService:
    """Tests for TemplateParserService."""

    def test_parser_initialization(self):
        """Test that parser service can be initialized."""
        parser = TemplateParserService()
        assert parser is not None

    def test_document_without_submodel(self, parser):
        """Test that a document without a submodel is rejected."""
        with pytest.raises(TemplateParseError):
            parser.parse({"assetAdministrationShells": []})

    def test_metadata(self, sample_template):
        """Test submodel metadata extraction."""
        metadata = sample_template.metadata
        assert metadata.id == "https://example.com/ids/sm/Sample"
        assert metadata.id_short == "Sample"
        assert metadata.semantic_id == "https://example.com/sm/Sample/1/0"
        assert metadata.version == "1"
        assert metadata.description == {"en": "Sample template"}

    def test_environment_prefers_template_kind(self, parser, sample_document):
        """Test that the template submodel of an environment is parsed."""
        instance = {"modelType": "Submodel", "id": "urn:other", "idShort": "Other", "kind": "Instance"}
        template = parser.parse({"submodels": [instance, sample_document]})
        assert template.metadata.id_short == "Sample"

    def test_paths_and_flat_lookup(self, sample_template):
        """Test that nested paths are recorded and indexed."""
        street = sample_template.find_element("Address.Street")
        assert street is not None
        assert street.path == ("Address", "Street")
        assert sample_template.find_element("Measurements.Value").value_type == "xs:decimal"
        assert find_element(sample_template, ["Documents", "Title"]) is not None

    def test_cardinality_flags(self, sample_template):
        """Test required and repeatable flags."""
        serial = sample_template.find_element("SerialNumber")
        tags = sample_template.find_element("Tags")
        assert serial.cardinality is Cardinality.ONE
        assert serial.is_required and not serial.is_array
        assert tags.cardinality is Cardinality.ZERO_TO_MANY
        assert tags.is_array and not tags.is_required

    def test_descriptions_and_display_names(self, sample_template):
        """Test language maps and labels."""
        serial = sample_template.find_element("SerialNumber")
        assert serial.description == {"en": "Serial number of the device"}
        assert serial.label("de") == "Seriennummer"
        assert serial.label("en") == "Seriennummer"
        assert sample_template.find_element("Address.City").label() == "City"

    def test_declared_list_item_template(self, sample_template):
        """Test that list items without idShort get the item name."""
        readings = sample_template.find_element("Readings")
        assert readings.kind is ElementKind.LIST
        assert readings.item_template.id_short == LIST_ITEM_ID_SHORT
        assert readings.item_template.path == ("Readings",)
        assert "idShort" not in readings.item_template.source
        assert readings.value_type == "xs:integer"
        assert readings.list_element_type == "Property"
        assert readings.order_relevant is True
        assert not sample_template.issues

    def test_empty_list_synthesizes_item(self, build_template):
        """Test an empty list declaring its item type."""
        template = build_template(
            [
                {
                    "idShort": "Codes",
                    "modelType": "SubmodelElementList",
                    "typeValueListElement": "Property",
                    "valueTypeListElement": "xs:string",
                }
            ]
        )
        item = template.find_element("Codes").item_template
        assert item.id_short == "Item"
        assert item.kind is ElementKind.PROPERTY
        assert item.value_type == "xs:string"

    def test_value_keys_resolve_list_items(self, sample_template):
        """Test that indexed value keys resolve to list item templates."""
        readings = sample_template.find_element("Readings")
        assert sample_template.find_value_element("Readings") is readings
        assert sample_template.find_value_element("Readings.3") is readings.item_template
        assert sample_template.find_value_element("Documents.0").kind is ElementKind.COLLECTION
        assert sample_template.find_value_element("Documents.0.Title").path == ("Documents", "Title")
        assert sample_template.find_value_element("Tags.1").id_short == "Tags"
        assert sample_template.find_value_element("Nope.0") is None

    def test_missing_id_short_uses_placeholder(self, build_template):
        """Test that a missing idShort produces a placeholder and an issue."""
        template = build_template([{"modelType": "Property", "valueType": "xs:string"}])
        assert template.elements[0].id_short == PLACEHOLDER_ID_SHORT
        assert len(template.issues) == 1
        assert template.issues[0].severity == "warning"

    def test_duplicate_id_shorts_are_renamed(self, build_template, raw_property):
        """Test that duplicate siblings get a numeric suffix."""
        template = build_template([raw_property("Name"), raw_property("Name")])
        assert [e.id_short for e in template.elements] == ["Name", "Name_2"]
        assert template.find_element("Name_2") is not None
        assert "Duplicate" in template.issues[0].message

    def test_unknown_kind_is_read_only(self, build_template):
        """Test that unknown model types are kept as read-only elements."""
        template = build_template([{"idShort": "Mystery", "modelType": "FancyElement"}])
        element = template.elements[0]
        assert element.kind is None
        assert element.input_kind is InputKind.READONLY
        assert template.issues[0].path == "Mystery"

    def test_non_object_elements_are_skipped(self, build_template, raw_property):
        """Test that garbage entries are skipped, not fatal."""
        template = build_template(["oops", raw_property("Name")])
        assert [e.id_short for e in template.elements] == ["Name"]
        assert len(template.issues) == 1

    def test_source_excludes_children(self, sample_template):
        """Test that the raw source node omits child lists."""
        address = sample_template.find_element("Address")
        assert "value" not in address.source
        assert address.source["idShort"] == "Address"

    def test_parse_is_pure(self, parser, sample_document):
        """Test that parsing twice yields equal trees."""
        assert parser.parse(sample_document) == parser.parse(sample_document)


class TestCardinality:
    """Tests for cardinality extraction."""

    def test_extract_cardinality_default(self):
        """Test extracting default cardinality."""
        assert extract_cardinality({}) is Cardinality.ZERO_TO_ONE

    def test_extract_cardinality_from_qualifier(self):
        """Test extracting cardinality from the SMT qualifier."""
        assert extract_cardinality({"SMT/Cardinality": "OneToMany"}) is Cardinality.ONE_TO_MANY

    def test_legacy_multiplicity(self):
        """Test the legacy Multiplicity qualifier with bracket notation."""
        assert extract_cardinality({"Multiplicity": "[0..*]"}) is Cardinality.ZERO_TO_MANY

    def test_unknown_value_defaults(self):
        """Test that values outside the vocabulary fall back to the default."""
        assert extract_cardinality({"SMT/Cardinality": "Several"}) is Cardinality.ZERO_TO_ONE

    def test_normalize_brackets(self):
        """Test bracket notations."""
        assert normalize_cardinality_value("[1]") is Cardinality.ONE
        assert normalize_cardinality_value("[1..*]") is Cardinality.ONE_TO_MANY
        assert normalize_cardinality_value(None) is None


class TestConstraints:
    """Tests for constraint extraction and input kinds."""

    def test_min_max_qualifiers(self, sample_template):
        """Test numeric bounds from SMT qualifiers."""
        constraints = sample_template.find_element("YearOfConstruction").constraints
        assert constraints.min == 1900
        assert constraints.max == 2100

    def test_intrinsic_bounds_merge(self):
        """Test that declared bounds are tightened by the XSD type."""
        constraints = extract_constraints(
            {}, {"SMT/Min": "-5", "SMT/Max": "1000"}, ElementKind.PROPERTY, "xs:unsignedByte"
        )
        assert constraints.min == 0
        assert constraints.max == 255

    def test_no_constraints(self):
        """Test that an unconstrained string has no constraints."""
        assert extract_constraints({}, {}, ElementKind.PROPERTY, "xs:string") is None

    def test_allowed_values_make_select(self, sample_template):
        """Test that allowed values turn a text field into a select."""
        status = sample_template.find_element("Status")
        assert status.constraints.allowed_values == ["active", "inactive"]
        assert status.input_kind is InputKind.SELECT

    def test_file_content_type(self, sample_template):
        """Test that File content types become constraints."""
        manual = sample_template.find_element("Manual")
        assert manual.constraints.content_type == "application/pdf"
        assert manual.input_kind is InputKind.FILE

    def test_resolve_input_kind_table(self):
        """Test the (kind, value type) table."""
        assert resolve_input_kind(ElementKind.PROPERTY, "xs:date") is InputKind.DATE
        assert resolve_input_kind(ElementKind.RANGE, "xs:int") is InputKind.RANGE
        assert resolve_input_kind(ElementKind.ENTITY, None) is InputKind.ENTITY
        assert resolve_input_kind(ElementKind.OPERATION, None) is InputKind.OPERATION
        assert resolve_input_kind(None, "xs:string") is InputKind.READONLY


class TestQueries:
    """Tests for template queries."""

    def test_required_elements(self, sample_template):
        """Test listing required elements."""
        paths = {e.path_key for e in required_elements(sample_template)}
        assert paths == {"SerialNumber", "Address.Street", "Measurements.Value", "Documents.Title"}

    def test_elements_by_input_kind(self, sample_template):
        """Test filtering by input kind."""
        ranges = elements_by_input_kind(sample_template, InputKind.RANGE)
        assert [e.id_short for e in ranges] == ["Temperature"]

    def test_count_elements(self, sample_template):
        """Test counting all elements in the tree."""
        # 13 top-level, Address(2), Measurements(1), Readings(1), Documents(1 + 2)
        assert count_elements(sample_template) == 20

    def test_extract_semantic_ids(self, sample_template):
        """Test collecting semantic ids including the submodel's."""
        ids = extract_semantic_ids(sample_template)
        assert "https://example.com/sm/Sample/1/0" in ids
        assert "https://example.com/ids/cd/SerialNumber" in ids
