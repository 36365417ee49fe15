"""
Template listing and discovery endpoints.

Provides API endpoints for browsing IDTA submodel templates and for
retrieving the UI tree a frontend renders a form from.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query

from formstudio.config import get_settings
from formstudio.dependencies import get_fetcher, get_parser
from formstudio.schemas.template import ParsedTemplate
from formstudio.schemas.ui_schema import TemplateInfo, TemplateListResponse, UITree
from formstudio.services.fetcher import (
    TemplateFetcherService,
    TemplateFetchError,
    TemplateNotFoundError,
)
from formstudio.services.parser import TemplateParserService
from formstudio.services.tree_generator import generate_ui_tree

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/templates", tags=["templates"])


def fetch_error_to_http(error: TemplateFetchError) -> HTTPException:
    """Map a fetch failure to the HTTP error returned to the client."""
    if isinstance(error, TemplateNotFoundError):
        return HTTPException(status_code=404, detail=error.message)
    status_code = error.status_code if error.status_code >= 500 else 502
    return HTTPException(status_code=status_code, detail=error.message)


async def load_template(
    template_id: str,
    fetcher: TemplateFetcherService,
    parser: TemplateParserService,
) -> ParsedTemplate:
    """Fetch and parse a template, raising HTTPException on failure."""
    try:
        document = await fetcher.fetch_template(template_id)
        return parser.parse(document)
    except TemplateFetchError as e:
        raise fetch_error_to_http(e)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("", response_model=TemplateListResponse)
async def list_templates(
    fetcher: Annotated[TemplateFetcherService, Depends(get_fetcher)],
    search: Annotated[str | None, Query(description="Search filter")] = None,
    category: Annotated[str | None, Query(description="Filter by category")] = None,
) -> TemplateListResponse:
    """
    List all available IDTA submodel templates.

    Templates are discovered in the admin-shell-io/submodel-templates
    GitHub repository and cached locally.
    """
    try:
        templates = await fetcher.list_templates()

        if search:
            search_lower = search.lower()
            templates = [
                t
                for t in templates
                if search_lower in t.name.lower()
                or search_lower in t.idShort.lower()
                or search_lower in t.description.lower()
            ]

        if category:
            templates = [t for t in templates if (t.category or "").lower() == category.lower()]

        return TemplateListResponse(templates=templates, total=len(templates), cached=True)
    except Exception as e:
        logger.exception("Failed to list templates")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/{template_id}", response_model=TemplateInfo)
async def get_template_info(
    template_id: str,
    fetcher: Annotated[TemplateFetcherService, Depends(get_fetcher)],
) -> TemplateInfo:
    """
    Get information about a specific template.
    """
    try:
        info = await fetcher.get_template_info(template_id)
        return info.model_copy(update={"url": fetcher.raw_url(info.path)})
    except TemplateFetchError as e:
        raise fetch_error_to_http(e)
    except Exception as e:
        logger.exception(f"Failed to get template info for {template_id}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/{template_id}/ui-tree", response_model=UITree)
async def get_ui_tree(
    template_id: str,
    fetcher: Annotated[TemplateFetcherService, Depends(get_fetcher)],
    parser: Annotated[TemplateParserService, Depends(get_parser)],
    language: Annotated[str | None, Query(description="Label language")] = None,
) -> UITree:
    """
    Get the UI tree for a template.

    Fetches the template and converts it into a renderable component tree.
    """
    settings = get_settings()
    template = await load_template(template_id, fetcher, parser)
    try:
        return generate_ui_tree(
            template,
            language=language or settings.default_language,
            languages=settings.supported_languages,
        )
    except Exception as e:
        logger.exception(f"Failed to generate UI tree for {template_id}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/{template_id}/elements")
async def get_template_elements(
    template_id: str,
    fetcher: Annotated[TemplateFetcherService, Depends(get_fetcher)],
    parser: Annotated[TemplateParserService, Depends(get_parser)],
) -> dict:
    """
    Get the parsed element tree of a template, including parse issues.
    """
    template = await load_template(template_id, fetcher, parser)
    return template.model_dump(by_alias=True, mode="json")


@router.post("/refresh")
async def refresh_template_cache(
    fetcher: Annotated[TemplateFetcherService, Depends(get_fetcher)],
) -> dict[str, int]:
    """
    Clear the template cache so templates are fetched again from GitHub.

    Returns the number of cache entries that were cleared.
    """
    count = fetcher.clear_cache()
    return {"cleared": count}


@router.delete("/{template_id}/cache")
async def invalidate_template_cache(
    template_id: str,
    fetcher: Annotated[TemplateFetcherService, Depends(get_fetcher)],
) -> dict[str, bool]:
    """
    Invalidate cache for a specific template.
    """
    result = fetcher.invalidate(template_id)
    return {"invalidated": result}
