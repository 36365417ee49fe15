"""
Backend services for IDTA Form Studio.

Pipeline:
- Fetcher: template discovery and caching
- Parser and Tree Generator: template to element tree to UI tree
- Form State: values, validation and array items
- Exporter and Importer: form values to and from Submodel instances
"""

from formstudio.services.exporter import SubmodelExporter
from formstudio.services.fetcher import TemplateFetcherService
from formstudio.services.importer import SubmodelImporter
from formstudio.services.parser import TemplateParserService

__all__ = [
    "TemplateFetcherService",
    "TemplateParserService",
    "SubmodelExporter",
    "SubmodelImporter",
]
