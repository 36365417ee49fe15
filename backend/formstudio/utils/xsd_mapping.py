"""
XSD datatype mapping.

Maps XML Schema datatypes to form input kinds and records the intrinsic
value ranges of the bounded integer types.
"""

from formstudio.schemas.template import InputKind

# Mapping from XSD datatypes to form input kinds
XSD_TO_INPUT_KIND: dict[str, InputKind] = {
    # String types
    "xs:string": InputKind.TEXT,
    "xs:normalizedString": InputKind.TEXT,
    "xs:token": InputKind.TEXT,
    "xs:language": InputKind.TEXT,
    # Boolean
    "xs:boolean": InputKind.BOOLEAN,
    # Numeric types (decimal-based)
    "xs:decimal": InputKind.DECIMAL,
    "xs:float": InputKind.DECIMAL,
    "xs:double": InputKind.DECIMAL,
    # Integer types
    "xs:integer": InputKind.INTEGER,
    "xs:int": InputKind.INTEGER,
    "xs:long": InputKind.INTEGER,
    "xs:short": InputKind.INTEGER,
    "xs:byte": InputKind.INTEGER,
    "xs:nonPositiveInteger": InputKind.INTEGER,
    "xs:negativeInteger": InputKind.INTEGER,
    "xs:nonNegativeInteger": InputKind.INTEGER,
    "xs:positiveInteger": InputKind.INTEGER,
    "xs:unsignedInt": InputKind.INTEGER,
    "xs:unsignedLong": InputKind.INTEGER,
    "xs:unsignedShort": InputKind.INTEGER,
    "xs:unsignedByte": InputKind.INTEGER,
    "xs:gYear": InputKind.INTEGER,
    # Date and time types
    "xs:date": InputKind.DATE,
    "xs:time": InputKind.TIME,
    "xs:dateTime": InputKind.DATETIME,
    # URI types
    "xs:anyURI": InputKind.URL,
    # Binary types
    "xs:base64Binary": InputKind.BLOB,
    "xs:hexBinary": InputKind.BLOB,
}

INTEGER_TYPES: frozenset[str] = frozenset(
    xsd for xsd, kind in XSD_TO_INPUT_KIND.items() if kind is InputKind.INTEGER
)

DECIMAL_TYPES: frozenset[str] = frozenset({"xs:decimal", "xs:double", "xs:float"})

# Mapping for min/max constraints
XSD_RANGE_CONSTRAINTS: dict[str, dict[str, int | None]] = {
    "xs:byte": {"min": -128, "max": 127},
    "xs:unsignedByte": {"min": 0, "max": 255},
    "xs:short": {"min": -32768, "max": 32767},
    "xs:unsignedShort": {"min": 0, "max": 65535},
    "xs:int": {"min": -2147483648, "max": 2147483647},
    "xs:unsignedInt": {"min": 0, "max": 4294967295},
    "xs:long": {"min": -9223372036854775808, "max": 9223372036854775807},
    "xs:unsignedLong": {"min": 0, "max": 18446744073709551615},
    "xs:positiveInteger": {"min": 1, "max": None},
    "xs:nonNegativeInteger": {"min": 0, "max": None},
    "xs:negativeInteger": {"min": None, "max": -1},
    "xs:nonPositiveInteger": {"min": None, "max": 0},
}


def normalize_xsd_type(xsd_type: str | None) -> str | None:
    """Normalize ``xsd:`` prefixes and whitespace to the ``xs:`` form."""
    if xsd_type is None:
        return None
    type_str = str(xsd_type).strip()
    if not type_str:
        return None
    if type_str.startswith("xsd:"):
        type_str = "xs:" + type_str[4:]
    return type_str


def get_input_kind(xsd_type: str | None) -> InputKind:
    """
    Get the form input kind for an XSD datatype.

    Unknown or missing types fall back to plain text.
    """
    type_str = normalize_xsd_type(xsd_type)
    if type_str is None:
        return InputKind.TEXT
    return XSD_TO_INPUT_KIND.get(type_str, InputKind.TEXT)


def is_integer_type(xsd_type: str | None) -> bool:
    return normalize_xsd_type(xsd_type) in INTEGER_TYPES


def is_decimal_type(xsd_type: str | None) -> bool:
    return normalize_xsd_type(xsd_type) in DECIMAL_TYPES


def is_numeric_type(xsd_type: str | None) -> bool:
    return is_integer_type(xsd_type) or is_decimal_type(xsd_type)


def get_range_constraints(xsd_type: str | None) -> dict[str, int | None]:
    """
    Get the intrinsic min/max of a bounded integer type.

    Returns:
        Dict with 'min' and 'max' keys (values may be None)
    """
    type_str = normalize_xsd_type(xsd_type)
    if type_str is None:
        return {"min": None, "max": None}
    return XSD_RANGE_CONSTRAINTS.get(type_str, {"min": None, "max": None})
