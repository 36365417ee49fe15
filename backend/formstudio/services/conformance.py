"""
Structural conformance check for exported submodels.

Validates documents against the bundled Draft 7 subset of the AAS V3.0 JSON
schema. Violations are returned as data; the caller decides whether to block.
"""

import json
import logging
from pathlib import Path
from typing import Any

from jsonschema import Draft7Validator
from pydantic import BaseModel

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).resolve().parent.parent / "resources" / "submodel.schema.json"


class SchemaViolation(BaseModel):
    """One schema violation, located by a dot-joined document path."""

    path: str
    message: str


def load_schema(path: Path = SCHEMA_PATH) -> dict[str, Any]:
    with path.open(encoding="utf-8") as f:
        return json.load(f)


class SchemaValidator:
    """Checks documents against the submodel schema."""

    def __init__(self, schema: dict[str, Any] | None = None):
        schema = schema or load_schema()
        Draft7Validator.check_schema(schema)
        self._validator = Draft7Validator(schema)

    def check(self, document: Any) -> list[SchemaViolation]:
        """
        Validate a document.

        Returns:
            Violations sorted by path; empty if the document conforms
        """
        errors = sorted(
            self._validator.iter_errors(document),
            key=lambda e: [str(part) for part in e.absolute_path],
        )
        violations = [
            SchemaViolation(
                path=".".join(str(part) for part in error.absolute_path) or "$",
                message=error.message,
            )
            for error in errors
        ]
        if violations:
            logger.warning(f"Document has {len(violations)} schema violation(s)")
        return violations

    def is_valid(self, document: Any) -> bool:
        return self._validator.is_valid(document)
