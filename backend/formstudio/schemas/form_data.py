"""
Pydantic models for form submission data.

These models define the request and response bodies exchanged with the
frontend when validating, exporting, importing and saving submodels. Form
values are flat maps keyed by dot-joined paths.
"""

from typing import Any

from pydantic import BaseModel, Field, field_validator

from formstudio.services.conformance import SchemaViolation
from formstudio.services.exporter import ExportOptions


class FormValues(BaseModel):
    """
    Flat form values as held by the form state controller.

    ``arrayItems`` may be omitted; it is then derived from the value keys.
    """

    values: dict[str, Any] = Field(default_factory=dict)
    arrayItems: dict[str, list[int]] | None = None

    @field_validator("values", mode="before")
    @classmethod
    def ensure_values_dict(cls, v):
        if v is None:
            return {}
        return v


class FieldError(BaseModel):
    """Validation error detail."""

    field: str
    message: str


class ValidationResult(BaseModel):
    """Result of form validation."""

    valid: bool
    errors: list[FieldError] = Field(default_factory=list)


class ExportRequest(FormValues):
    """Request for exporting a filled submodel."""

    options: ExportOptions = Field(default_factory=ExportOptions)
    filename: str | None = None


class ExportResponse(BaseModel):
    """Exported submodel with warnings and schema violations."""

    submodel: dict[str, Any]
    warnings: list[str] = Field(default_factory=list)
    violations: list[SchemaViolation] = Field(default_factory=list)
    conformant: bool = True


class ImportResponse(BaseModel):
    """Form values read from an existing submodel."""

    values: dict[str, Any]
    arrayItems: dict[str, list[int]]
    idShort: str | None = None
    semanticId: str | None = None
    templateId: str | None = None


class UploadResponse(BaseModel):
    """Response after uploading an AASX or JSON file."""

    success: bool
    result: ImportResponse | None = None
    error: str | None = None
    filename: str | None = None


class SaveSubmodelRequest(BaseModel):
    """Request for persisting a submodel in the AAS Environment."""

    submodel: dict[str, Any]
    upsert: bool = True

    @field_validator("submodel")
    @classmethod
    def require_id(cls, v):
        if not v.get("id"):
            raise ValueError("submodel must have an id")
        return v


class SubmodelListResponse(BaseModel):
    submodels: list[dict[str, Any]]
    total: int
