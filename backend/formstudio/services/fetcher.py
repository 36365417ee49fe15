"""
Template Fetcher Service.

Fetches IDTA Submodel Templates from the admin-shell-io/submodel-templates
GitHub repository. Known templates are listed in a built-in catalog which is
extended by the repository tree when GitHub is reachable.
"""

import hashlib
import json
import logging
import re
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any
from urllib.parse import quote

import httpx

from formstudio.config import Settings, get_settings
from formstudio.schemas.ui_schema import TemplateInfo
from formstudio.services.packager import AASXPackager, AASXPackagingError

logger = logging.getLogger(__name__)

INDEX_CACHE_KEY = "__template_index__"

BUILTIN_TEMPLATES: list[TemplateInfo] = [
    TemplateInfo(
        id="digital-nameplate",
        idShort="Nameplate",
        name="Digital Nameplate",
        version="2",
        revision="0",
        semanticId="https://admin-shell.io/idta/nameplate/2/0/Nameplate",
        path="deprecated/Digital nameplate/2/0/IDTA 02006-2-0_Template_Digital Nameplate.json",
        description="Provides basic product identification information (manufacturer, serial number, etc.)",
        category="Identification",
    ),
    TemplateInfo(
        id="contact-information",
        idShort="ContactInformation",
        name="Contact Information",
        version="1",
        revision="0",
        semanticId="https://admin-shell.io/zvei/nameplate/1/0/ContactInformation",
        path="published/Contact Information/1/0/IDTA 02002-1-0_Template_ContactInformation.json",
        description="Contact details for manufacturer or service provider",
        category="Identification",
    ),
    TemplateInfo(
        id="technical-data",
        idShort="TechnicalData",
        name="Technical Data",
        version="1",
        revision="2",
        semanticId="https://admin-shell.io/ZVEI/TechnicalData/1/2",
        path="published/Technical_Data/1/2/IDTA_02003-1-2_Template_TechnicalData.json",
        description="Technical specifications and characteristics of an asset",
        category="Technical",
    ),
    TemplateInfo(
        id="handover-documentation",
        idShort="HandoverDocumentation",
        name="Handover Documentation",
        version="1",
        revision="2",
        semanticId="https://admin-shell.io/VDMA/HandoverDocumentation/1/2",
        path="deprecated/Handover Documentation/1/2/IDTA 02004-1-2_Template_Handover Documentation.json",
        description="Documentation package for asset handover",
        category="Documentation",
    ),
    TemplateInfo(
        id="carbon-footprint",
        idShort="CarbonFootprint",
        name="Carbon Footprint",
        version="1",
        revision="0",
        semanticId="https://admin-shell.io/idta/CarbonFootprint/1/0",
        path="published/Carbon Footprint/1/0/IDTA 02023 _Template_CarbonFootprint.json",
        description="Product carbon footprint information for sustainability reporting",
        category="Sustainability",
    ),
    TemplateInfo(
        id="bill-of-material",
        idShort="BillOfMaterial",
        name="Bill of Material",
        version="1",
        revision="0",
        semanticId="https://admin-shell.io/idta/BillOfMaterial/1/0",
        path="published/Bill of Material/1/0/IDTA 02028-1-0_Template_BillOfMaterial.json",
        description="Hierarchical bill of material structure",
        category="Technical",
    ),
]


class TemplateFetchError(Exception):
    """Raised when a template cannot be fetched."""

    def __init__(self, template_id: str, status_code: int, message: str):
        super().__init__(message)
        self.template_id = template_id
        self.status_code = status_code
        self.message = message


class TemplateNotFoundError(TemplateFetchError):
    """Raised for template ids not present in the catalog."""

    def __init__(self, template_id: str, available: list[str] | None = None):
        message = f"Unknown template ID: {template_id}"
        if available:
            message += f". Available: {', '.join(available)}"
        super().__init__(template_id, 404, message)


def _slugify(value: str) -> str:
    value = re.sub(r"\.(json|aasx)$", "", value.lower())
    return re.sub(r"[^a-z0-9]+", "-", value).strip("-")


def _clean_label(value: str) -> str:
    return " ".join(value.replace("_", " ").split())


def template_info_from_path(path: str) -> TemplateInfo | None:
    """
    Build a catalog entry from a repository file path.

    Examples:
        "published/Contact Information/1/0/IDTA 02002-1-0_Template_ContactInformation.json"
            -> name "Contact Information", version "1.0", idShort "ContactInformation"
    """
    path = path.replace("\\", "/")
    if not path.lower().endswith((".json", ".aasx")):
        return None
    if "template" not in path.lower():
        return None
    segments = path.split("/")
    status = segments[0]
    if status not in ("published", "deprecated") or len(segments) < 2:
        return None

    file_name = segments[-1]
    folders = segments[1:-1]
    numeric: list[str] = []
    while folders and folders[-1].isdigit():
        numeric.insert(0, folders.pop())

    name = _clean_label(" / ".join(folders) if folders else file_name)
    base = re.sub(r"\.(json|aasx)$", "", file_name, flags=re.IGNORECASE)
    match = re.search(r"template[_\s]+(.+)$", base, flags=re.IGNORECASE)
    id_short = _clean_label(match.group(1) if match else base) or name

    return TemplateInfo(
        id=_slugify(path),
        idShort=id_short,
        name=name,
        version=".".join(numeric) if numeric else "1",
        revision=numeric[1] if len(numeric) > 1 else "0",
        path=path,
        description=(
            "Deprecated IDTA template (no longer maintained)."
            if status == "deprecated"
            else "Published IDTA template."
        ),
        category="Deprecated" if status == "deprecated" else "Published",
    )


class TemplateCatalog:
    """Known templates, looked up by id, idShort or semantic id."""

    def __init__(self, entries: list[TemplateInfo] | None = None):
        self._entries: list[TemplateInfo] = list(BUILTIN_TEMPLATES if entries is None else entries)

    def entries(self) -> list[TemplateInfo]:
        return list(self._entries)

    def ids(self) -> list[str]:
        return [entry.id for entry in self._entries]

    def get(self, template_id: str) -> TemplateInfo | None:
        for entry in self._entries:
            if template_id in (entry.id, entry.idShort):
                return entry
        return None

    def find_by_semantic_id(self, semantic_id: str) -> TemplateInfo | None:
        for entry in self._entries:
            if entry.semanticId and entry.semanticId == semantic_id:
                return entry
        return None

    def merged_with(self, discovered: list[TemplateInfo]) -> "TemplateCatalog":
        """New catalog with discovered entries added, skipping known ids and paths."""
        seen_ids = {entry.id for entry in self._entries}
        seen_paths = {entry.path for entry in self._entries}
        merged = list(self._entries)
        for entry in discovered:
            if entry.id in seen_ids or entry.path in seen_paths:
                continue
            merged.append(entry)
            seen_ids.add(entry.id)
        merged.sort(key=lambda entry: entry.name.lower())
        return TemplateCatalog(merged)


class TemplateCache:
    """
    Cache for fetched template documents.

    Entries live in memory and, when a directory is configured, as JSON files
    on disk. Both expire after the TTL.
    """

    def __init__(self, cache_dir: Path | None = None, ttl_hours: float = 24):
        self.cache_dir = cache_dir
        self.ttl = timedelta(hours=ttl_hours)
        self._memory: dict[str, tuple[Any, datetime]] = {}
        if self.cache_dir is not None:
            self.cache_dir.mkdir(parents=True, exist_ok=True)

    def _is_valid(self, cache_time: datetime) -> bool:
        return datetime.now() - cache_time < self.ttl

    def _path(self, key: str) -> Path | None:
        if self.cache_dir is None:
            return None
        return self.cache_dir / f"{hashlib.md5(key.encode()).hexdigest()}.json"

    def get(self, key: str) -> Any | None:
        entry = self._memory.get(key)
        if entry is not None:
            value, timestamp = entry
            if self._is_valid(timestamp):
                return value
            del self._memory[key]

        path = self._path(key)
        if path is not None and path.exists():
            mtime = datetime.fromtimestamp(path.stat().st_mtime)
            if self._is_valid(mtime):
                try:
                    value = json.loads(path.read_text(encoding="utf-8"))
                except json.JSONDecodeError:
                    logger.warning(f"Discarding corrupt cache file {path}")
                    path.unlink(missing_ok=True)
                    return None
                self._memory[key] = (value, mtime)
                return value
        return None

    def set(self, key: str, value: Any, persist: bool = True) -> None:
        self._memory[key] = (value, datetime.now())
        path = self._path(key)
        if persist and path is not None:
            path.write_text(json.dumps(value), encoding="utf-8")

    def invalidate(self, key: str) -> bool:
        """Drop one entry. Returns True if anything was removed."""
        removed = self._memory.pop(key, None) is not None
        path = self._path(key)
        if path is not None and path.exists():
            path.unlink()
            removed = True
        return removed

    def clear(self) -> int:
        """Drop all entries. Returns the number of entries removed."""
        memory_paths = {self._path(key) for key in self._memory}
        count = len(self._memory)
        self._memory.clear()
        if self.cache_dir is not None:
            for cache_file in self.cache_dir.glob("*.json"):
                cache_file.unlink()
                if cache_file not in memory_paths:
                    count += 1
        return count


class TemplateFetcherService:
    """
    Service for fetching IDTA submodel templates from GitHub.

    Features:
    - Built-in catalog of known templates, extended from the repository tree
    - Explicit template cache with configurable TTL
    - JSON and AASX template files
    """

    def __init__(
        self,
        settings: Settings | None = None,
        cache: TemplateCache | None = None,
        catalog: TemplateCatalog | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        packager: AASXPackager | None = None,
    ):
        settings = settings or get_settings()
        self.github_token = settings.github_token
        self.github_repo = settings.github_repo
        self.github_branch = settings.github_branch
        self.raw_base_url = settings.github_raw_base_url.rstrip("/")
        self.github_api_version = settings.github_api_version
        self.cache = cache or TemplateCache(settings.cache_dir, settings.cache_ttl_hours)
        self.catalog = catalog or TemplateCatalog()
        self.packager = packager or AASXPackager()
        self._transport = transport

    @property
    def headers(self) -> dict[str, str]:
        """Get HTTP headers for GitHub API requests."""
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": self.github_api_version,
            "User-Agent": "IDTA-Form-Studio/1.0",
        }
        if self.github_token:
            headers["Authorization"] = f"Bearer {self.github_token}"
        return headers

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout, transport=self._transport)

    def raw_url(self, template_path: str) -> str:
        return f"{self.raw_base_url}/{self.github_repo}/{self.github_branch}/{quote(template_path)}"

    async def list_templates(self, refresh: bool = False) -> list[TemplateInfo]:
        """
        List known templates.

        The built-in catalog is merged with the templates discovered in the
        repository tree. If GitHub is unreachable the built-in catalog is used.
        """
        if not refresh:
            cached = self.cache.get(INDEX_CACHE_KEY)
            if cached is not None:
                logger.debug("Returning cached template index")
                return [TemplateInfo(**entry) for entry in cached]

        try:
            discovered = await self._discover_templates()
        except (httpx.HTTPError, ValueError, KeyError) as e:
            logger.warning(f"Falling back to built-in templates: {e}")
            return self.catalog.entries()

        self.catalog = self.catalog.merged_with(discovered)
        entries = self.catalog.entries()
        self.cache.set(
            INDEX_CACHE_KEY, [entry.model_dump() for entry in entries], persist=False
        )
        return entries

    async def _discover_templates(self) -> list[TemplateInfo]:
        logger.info("Fetching template index from GitHub")
        url = f"https://api.github.com/repos/{self.github_repo}/git/trees/{self.github_branch}"
        async with self._client(30.0) as client:
            response = await client.get(url, params={"recursive": "1"}, headers=self.headers)
            response.raise_for_status()
            tree = response.json()["tree"]

        entries = []
        for item in tree:
            if item.get("type") != "blob":
                continue
            info = template_info_from_path(item["path"])
            if info is not None:
                entries.append(info)
        return entries

    async def get_template_info(self, template_id: str) -> TemplateInfo:
        info = self.catalog.get(template_id)
        if info is None:
            await self.list_templates()
            info = self.catalog.get(template_id)
        if info is None:
            raise TemplateNotFoundError(template_id, self.catalog.ids())
        return info

    async def fetch_template(self, template_id: str) -> dict[str, Any]:
        """
        Fetch a template document by catalog id or idShort.

        Returns:
            The raw AAS JSON document (Environment or Submodel)

        Raises:
            TemplateNotFoundError: If the id is not in the catalog
            TemplateFetchError: If GitHub returns an error or invalid content
        """
        info = await self.get_template_info(template_id)

        cached = self.cache.get(info.id)
        if cached is not None:
            logger.debug(f"Returning cached template {info.id}")
            return cached

        url = self.raw_url(info.path)
        logger.info(f"Fetching template {info.id} from {url}")
        try:
            async with self._client(60.0) as client:
                response = await client.get(url, follow_redirects=True)
        except httpx.HTTPError as e:
            raise TemplateFetchError(info.id, 503, f"Template source unreachable: {e}") from e

        if response.status_code != 200:
            raise TemplateFetchError(
                info.id,
                response.status_code,
                f"Failed to fetch template from GitHub: {response.status_code} {response.reason_phrase}",
            )

        document = self._decode(info, response.content)
        self.cache.set(info.id, document)
        return document

    async def fetch_template_by_semantic_id(self, semantic_id: str) -> dict[str, Any]:
        info = self.catalog.find_by_semantic_id(semantic_id)
        if info is None:
            raise TemplateNotFoundError(semantic_id)
        return await self.fetch_template(info.id)

    def _decode(self, info: TemplateInfo, content: bytes) -> dict[str, Any]:
        if info.path.lower().endswith(".aasx"):
            try:
                return self.packager.unpack(content)
            except AASXPackagingError as e:
                raise TemplateFetchError(info.id, 502, str(e)) from e
        try:
            document = json.loads(content.decode("utf-8-sig"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise TemplateFetchError(info.id, 502, f"Invalid template JSON: {e}") from e
        if not isinstance(document, dict):
            raise TemplateFetchError(info.id, 502, "Template document is not a JSON object")
        return document

    def clear_cache(self) -> int:
        """
        Clear all cached templates.

        Returns:
            Number of entries removed.
        """
        count = self.cache.clear()
        logger.info(f"Cleared {count} cached templates")
        return count

    def invalidate(self, template_id: str) -> bool:
        """
        Invalidate cache for a specific template.

        Returns:
            True if an entry was removed.
        """
        info = self.catalog.get(template_id)
        removed = self.cache.invalidate(info.id if info else template_id)
        if removed:
            logger.info(f"Invalidated cache for {template_id}")
        return removed
