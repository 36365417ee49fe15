"""
FastAPI dependency injection setup.

Provides factory functions for service instances used across routes.
"""

from functools import lru_cache

from formstudio.clients.basyx_client import BaSyxClient
from formstudio.config import get_settings
from formstudio.services.conformance import SchemaValidator
from formstudio.services.exporter import SubmodelExporter
from formstudio.services.fetcher import TemplateCache, TemplateFetcherService
from formstudio.services.importer import SubmodelImporter
from formstudio.services.packager import AASXPackager
from formstudio.services.parser import TemplateParserService


@lru_cache
def get_fetcher() -> TemplateFetcherService:
    """Get cached fetcher service instance."""
    settings = get_settings()
    return TemplateFetcherService(
        settings=settings,
        cache=TemplateCache(settings.cache_dir, settings.cache_ttl_hours),
        packager=get_packager(),
    )


@lru_cache
def get_parser() -> TemplateParserService:
    """Get cached parser service instance."""
    return TemplateParserService()


@lru_cache
def get_schema_validator() -> SchemaValidator:
    """Get cached schema validator (the schema is loaded once)."""
    return SchemaValidator()


@lru_cache
def get_exporter() -> SubmodelExporter:
    """Get cached exporter service instance."""
    return SubmodelExporter(schema_validator=get_schema_validator())


@lru_cache
def get_importer() -> SubmodelImporter:
    return SubmodelImporter()


@lru_cache
def get_packager() -> AASXPackager:
    return AASXPackager()


@lru_cache
def get_basyx_client() -> BaSyxClient:
    """Get cached persistence client for the configured AAS Environment."""
    settings = get_settings()
    return BaSyxClient(
        base_url=settings.basyx_environment_url,
        timeout=settings.basyx_timeout_seconds,
    )
