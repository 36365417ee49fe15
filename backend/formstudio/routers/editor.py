"""
Editor endpoints for validating, exporting and importing submodels.

Provides the core API for turning form values into Submodel instances and
existing Submodel instances back into form values.
"""

import json
import logging
from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, File, HTTPException, UploadFile
from fastapi.responses import Response

from formstudio.config import get_settings
from formstudio.dependencies import (
    get_exporter,
    get_fetcher,
    get_importer,
    get_packager,
    get_parser,
)
from formstudio.routers.templates import load_template
from formstudio.schemas.form_data import (
    ExportRequest,
    ExportResponse,
    FieldError,
    FormValues,
    ImportResponse,
    UploadResponse,
    ValidationResult,
)
from formstudio.services.array_state import derive_from_values
from formstudio.services.exporter import SubmodelExporter
from formstudio.services.fetcher import TemplateFetcherService
from formstudio.services.importer import SubmodelImporter
from formstudio.services.packager import AASXPackager, AASXPackagingError
from formstudio.services.parser import TemplateParserService
from formstudio.services.validation import validate_form
from formstudio.utils.aas_json import find_submodel, reference_value

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/editor", tags=["editor"])

AASX_MEDIA_TYPE = "application/asset-administration-shell-package+xml"


@router.post("/{template_id}/validate", response_model=ValidationResult)
async def validate_form_values(
    template_id: str,
    form_values: FormValues,
    fetcher: Annotated[TemplateFetcherService, Depends(get_fetcher)],
    parser: Annotated[TemplateParserService, Depends(get_parser)],
) -> ValidationResult:
    """
    Validate form values against the template.

    Checks required fields, sections and lists as well as value types.
    """
    template = await load_template(template_id, fetcher, parser)
    try:
        array_items = form_values.arrayItems
        if array_items is None:
            array_items = derive_from_values(form_values.values)
        errors = validate_form(template, form_values.values, array_items)
        return ValidationResult(
            valid=not errors,
            errors=[FieldError(field=k, message=v) for k, v in sorted(errors.items())],
        )
    except Exception as e:
        logger.exception(f"Failed to validate form values for {template_id}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/{template_id}/export", response_model=ExportResponse)
async def export_submodel(
    template_id: str,
    request: ExportRequest,
    fetcher: Annotated[TemplateFetcherService, Depends(get_fetcher)],
    parser: Annotated[TemplateParserService, Depends(get_parser)],
    exporter: Annotated[SubmodelExporter, Depends(get_exporter)],
) -> ExportResponse:
    """
    Export form values as an AAS V3.0 Submodel instance (JSON).

    Schema violations are reported alongside the document, not raised.
    """
    template = await load_template(template_id, fetcher, parser)
    try:
        result = exporter.export(template, request.values, request.options)
        return ExportResponse(
            submodel=result.submodel,
            warnings=result.warnings,
            violations=result.violations,
            conformant=result.is_conformant,
        )
    except Exception as e:
        logger.exception(f"Failed to export {template_id}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/{template_id}/export/aasx")
async def export_submodel_aasx(
    template_id: str,
    request: ExportRequest,
    fetcher: Annotated[TemplateFetcherService, Depends(get_fetcher)],
    parser: Annotated[TemplateParserService, Depends(get_parser)],
    exporter: Annotated[SubmodelExporter, Depends(get_exporter)],
    packager: Annotated[AASXPackager, Depends(get_packager)],
) -> Response:
    """
    Export form values and return the Submodel packed as an AASX file.
    """
    template = await load_template(template_id, fetcher, parser)
    try:
        result = exporter.export(template, request.values, request.options)
        content = packager.pack(result.submodel)
    except AASXPackagingError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception(f"Failed to export {template_id} as AASX")
        raise HTTPException(status_code=500, detail=str(e))

    filename = request.filename or f"{template.metadata.id_short}.aasx"
    return Response(
        content=content,
        media_type=AASX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def _to_import_response(
    document: dict[str, Any],
    importer: SubmodelImporter,
    fetcher: TemplateFetcherService,
) -> ImportResponse:
    values = importer.import_values(document)
    submodel = find_submodel(document) or {}
    semantic_id = reference_value(submodel.get("semanticId"))
    info = fetcher.catalog.find_by_semantic_id(semantic_id) if semantic_id else None
    return ImportResponse(
        values=values,
        arrayItems=derive_from_values(values),
        idShort=submodel.get("idShort"),
        semanticId=semantic_id,
        templateId=info.id if info else None,
    )


@router.post("/import", response_model=ImportResponse)
async def import_submodel(
    document: Annotated[dict[str, Any], Body(description="AAS V3.0 Submodel or Environment")],
    importer: Annotated[SubmodelImporter, Depends(get_importer)],
    fetcher: Annotated[TemplateFetcherService, Depends(get_fetcher)],
) -> ImportResponse:
    """
    Read form values from an existing Submodel instance.

    The matching catalog template is reported when the semantic id is known.
    """
    try:
        return _to_import_response(document, importer, fetcher)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception("Failed to import submodel")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/upload", response_model=UploadResponse)
async def upload_submodel(
    file: Annotated[UploadFile, File(...)],
    importer: Annotated[SubmodelImporter, Depends(get_importer)],
    packager: Annotated[AASXPackager, Depends(get_packager)],
    fetcher: Annotated[TemplateFetcherService, Depends(get_fetcher)],
) -> UploadResponse:
    """
    Upload an AASX or JSON file and read its form values.

    Allows users to edit existing submodels rather than starting
    from a template.
    """
    settings = get_settings()
    filename = file.filename or ""

    if not filename.lower().endswith((".aasx", ".json")):
        return UploadResponse(
            success=False,
            error="Only AASX and JSON files are accepted",
            filename=file.filename,
        )

    try:
        contents = await file.read()
        max_size = settings.max_upload_size_mb * 1024 * 1024

        if len(contents) > max_size:
            return UploadResponse(
                success=False,
                error=f"File too large. Maximum size is {settings.max_upload_size_mb}MB",
                filename=file.filename,
            )

        if filename.lower().endswith(".aasx"):
            document = packager.unpack(contents)
        else:
            document = json.loads(contents.decode("utf-8-sig"))
            if not isinstance(document, dict):
                raise ValueError("JSON document must be an object")

        return UploadResponse(
            success=True,
            result=_to_import_response(document, importer, fetcher),
            filename=file.filename,
        )
    except (ValueError, UnicodeDecodeError) as e:
        return UploadResponse(
            success=False,
            error=str(e),
            filename=file.filename,
        )
    except Exception:
        logger.exception("Failed to read uploaded file")
        return UploadResponse(
            success=False,
            error="Failed to read uploaded file",
            filename=file.filename,
        )
