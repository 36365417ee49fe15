"""
Shared fixtures: a sample IDTA-style template and helpers to build others.
"""

import copy
from typing import Any

import pytest

from formstudio.schemas.template import ParsedTemplate
from formstudio.services.parser import TemplateParserService


def ref(value: str) -> dict[str, Any]:
    return {"type": "ExternalReference", "keys": [{"type": "GlobalReference", "value": value}]}


def cardinality(value: str) -> list[dict[str, Any]]:
    return [{"type": "SMT/Cardinality", "valueType": "xs:string", "value": value}]


def prop(
    id_short: str,
    value_type: str = "xs:string",
    card: str = "ZeroToOne",
    **extra: Any,
) -> dict[str, Any]:
    node = {
        "idShort": id_short,
        "modelType": "Property",
        "valueType": value_type,
        "semanticId": ref(f"https://example.com/ids/cd/{id_short}"),
        "qualifiers": cardinality(card),
    }
    node.update(extra)
    return node


def collection(id_short: str, children: list[dict[str, Any]], card: str = "ZeroToOne") -> dict[str, Any]:
    return {
        "idShort": id_short,
        "modelType": "SubmodelElementCollection",
        "semanticId": ref(f"https://example.com/ids/cd/{id_short}"),
        "qualifiers": cardinality(card),
        "value": children,
    }


def submodel(elements: list[dict[str, Any]], id_short: str = "Sample") -> dict[str, Any]:
    return {
        "modelType": "Submodel",
        "id": f"https://example.com/ids/sm/{id_short}",
        "idShort": id_short,
        "kind": "Template",
        "semanticId": ref(f"https://example.com/sm/{id_short}/1/0"),
        "administration": {"version": "1", "revision": "0"},
        "description": [{"language": "en", "text": "Sample template"}],
        "submodelElements": elements,
    }


SAMPLE_ELEMENTS: list[dict[str, Any]] = [
    prop(
        "SerialNumber",
        card="One",
        description=[{"language": "en", "text": "Serial number of the device"}],
        displayName=[{"language": "de", "text": "Seriennummer"}],
    ),
    prop("Tags", card="ZeroToMany"),
    collection(
        "Address",
        [prop("Street", card="One"), prop("City")],
    ),
    collection(
        "Measurements",
        [prop("Value", "xs:decimal", card="One")],
        card="ZeroToMany",
    ),
    {
        "idShort": "ManufacturerName",
        "modelType": "MultiLanguageProperty",
        "semanticId": ref("https://example.com/ids/cd/ManufacturerName"),
        "qualifiers": cardinality("ZeroToOne"),
    },
    {
        "idShort": "Readings",
        "modelType": "SubmodelElementList",
        "semanticId": ref("https://example.com/ids/cd/Readings"),
        "qualifiers": cardinality("ZeroToOne"),
        "orderRelevant": True,
        "typeValueListElement": "Property",
        "valueTypeListElement": "xs:integer",
        "value": [{"modelType": "Property", "valueType": "xs:integer"}],
    },
    {
        "idShort": "Documents",
        "modelType": "SubmodelElementList",
        "qualifiers": cardinality("ZeroToOne"),
        "orderRelevant": False,
        "typeValueListElement": "SubmodelElementCollection",
        "value": [
            {
                "modelType": "SubmodelElementCollection",
                "value": [prop("Title", card="One"), prop("Pages", "xs:int")],
            }
        ],
    },
    {
        "idShort": "Temperature",
        "modelType": "Range",
        "valueType": "xs:double",
        "qualifiers": cardinality("ZeroToOne"),
    },
    {
        "idShort": "Manual",
        "modelType": "File",
        "contentType": "application/pdf",
        "qualifiers": cardinality("ZeroToOne"),
    },
    prop(
        "YearOfConstruction",
        "xs:integer",
        qualifiers=cardinality("ZeroToOne")
        + [
            {"type": "SMT/Min", "valueType": "xs:integer", "value": "1900"},
            {"type": "SMT/Max", "valueType": "xs:integer", "value": "2100"},
        ],
    ),
    prop("Website", "xs:anyURI"),
    prop(
        "Status",
        qualifiers=cardinality("ZeroToOne")
        + [{"type": "SMT/AllowedValue", "valueType": "xs:string", "value": "active, inactive"}],
    ),
    {
        "idShort": "Reset",
        "modelType": "Operation",
        "qualifiers": cardinality("ZeroToOne"),
    },
]

FILLED_VALUES: dict[str, Any] = {
    "SerialNumber": "SN-1",
    "Tags.0": "A",
    "Tags.1": "B",
    "Address.Street": "Main",
    "Address.City": "Berlin",
    "Measurements.0.Value": 1.5,
    "Measurements.1.Value": 2.25,
    "ManufacturerName": [
        {"language": "en", "text": "ACME"},
        {"language": "de", "text": "ACME GmbH"},
    ],
    "Readings.0": 42,
    "Documents.0.Title": "Manual",
    "Documents.0.Pages": 12,
    "Temperature": {"min": -20, "max": 80},
    "Manual": {"path": "/aasx/manual.pdf", "contentType": "application/pdf"},
    "YearOfConstruction": 2020,
    "Website": "https://example.com/device",
    "Status": "active",
}


@pytest.fixture
def sample_document() -> dict[str, Any]:
    return copy.deepcopy(submodel(SAMPLE_ELEMENTS))


@pytest.fixture
def parser() -> TemplateParserService:
    return TemplateParserService()


@pytest.fixture
def sample_template(parser, sample_document) -> ParsedTemplate:
    return parser.parse(sample_document)


@pytest.fixture
def filled_values() -> dict[str, Any]:
    return copy.deepcopy(FILLED_VALUES)


@pytest.fixture
def build_template(parser):
    """Parse a template made of the given raw elements."""

    def _build(elements: list[dict[str, Any]], id_short: str = "Sample") -> ParsedTemplate:
        return parser.parse(submodel(copy.deepcopy(elements), id_short))

    return _build


@pytest.fixture
def raw_property():
    return prop


@pytest.fixture
def raw_collection():
    return collection
