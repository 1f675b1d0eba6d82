"""Extension gallery catalog client.

Resolves identifiers with one ``extensionquery`` request against a
Visual Studio style extension gallery.
"""

import logging
from collections.abc import Mapping, Sequence
from enum import IntEnum, IntFlag
from typing import Any

import httpx

from extpack.catalog.base import CatalogClient, ResolutionError
from extpack.core.config import DEFAULT_GALLERY_URL, DEFAULT_TARGET
from extpack.models.catalog import CatalogEntry

logger = logging.getLogger(__name__)

QUERY_PATH = "/_apis/public/gallery/extensionquery"
QUERY_API_VERSION = "3.0-preview.1"

VSIX_ID_PROPERTY = "Microsoft.VisualStudio.Services.VsixId"
VSIX_PACKAGE_ASSET = "Microsoft.VisualStudio.Services.VSIXPackage"


class FilterType(IntEnum):
    """Gallery query criterion types."""

    TAG = 1
    EXTENSION_ID = 4
    CATEGORY = 5
    EXTENSION_NAME = 7
    TARGET = 8
    FEATURED = 9
    SEARCH_TEXT = 10
    EXCLUDE_WITH_FLAGS = 12


class QueryFlags(IntFlag):
    """Gallery query flags."""

    NONE = 0x0
    INCLUDE_VERSIONS = 0x1
    INCLUDE_FILES = 0x2
    INCLUDE_CATEGORY_AND_TAGS = 0x4
    INCLUDE_VERSION_PROPERTIES = 0x10
    INCLUDE_ASSET_URI = 0x80
    INCLUDE_LATEST_VERSION_ONLY = 0x200
    UNPUBLISHED = 0x1000


class GalleryCatalog(CatalogClient):
    """Catalog client for a Visual Studio style extension gallery.

    Attributes:
        gallery_url: Base URL of the gallery.
        target: Installation target used to scope the query.
    """

    def __init__(
        self,
        gallery_url: str = DEFAULT_GALLERY_URL,
        target: str = DEFAULT_TARGET,
        timeout: float | None = 30.0,
        client: httpx.Client | None = None,
    ) -> None:
        """Initialize the gallery client.

        Args:
            gallery_url: Base URL of the gallery.
            target: Installation target used to scope the query.
            timeout: Request timeout in seconds.
            client: Preconfigured HTTP client; a new one is opened per query if None.
        """
        self.gallery_url = gallery_url.rstrip("/")
        self.target = target
        self._timeout = timeout
        self._client = client

    @property
    def query_url(self) -> str:
        """Full URL of the extension query endpoint."""
        return self.gallery_url + QUERY_PATH

    def build_query(self, identifiers: Sequence[str]) -> dict[str, Any]:
        """Build the JSON body for an extension query.

        Args:
            identifiers: Identifiers to look up.

        Returns:
            Query body with one criterion per identifier.
        """
        criteria: list[dict[str, Any]] = [
            {"filterType": int(FilterType.TARGET), "value": self.target},
            {
                "filterType": int(FilterType.EXCLUDE_WITH_FLAGS),
                "value": str(int(QueryFlags.UNPUBLISHED)),
            },
        ]
        criteria.extend(
            {"filterType": int(FilterType.EXTENSION_NAME), "value": identifier}
            for identifier in identifiers
        )
        flags = (
            QueryFlags.INCLUDE_ASSET_URI
            | QueryFlags.INCLUDE_VERSION_PROPERTIES
            | QueryFlags.INCLUDE_LATEST_VERSION_ONLY
        )
        return {
            "filters": [{"criteria": criteria, "pageNumber": 1, "pageSize": len(identifiers)}],
            "flags": int(flags),
        }

    def resolve(
        self,
        identifiers: Sequence[str],
        locale: str = "en-US",
        include_preview: bool = False,
    ) -> list[CatalogEntry]:
        """Resolve identifiers with a single gallery query.

        Args:
            identifiers: Identifiers to look up.
            locale: Sent as Accept-Language.
            include_preview: Whether preview extensions may be returned.

        Returns:
            Entries for the recognized identifiers, in gallery order.

        Raises:
            ResolutionError: On transport errors, HTTP errors or malformed payloads.
        """
        if not identifiers:
            return []

        body = self.build_query(identifiers)
        headers = {
            "Content-Type": "application/json",
            "Accept": f"application/json;api-version={QUERY_API_VERSION}",
            "Accept-Language": locale,
        }

        logger.info("Querying %s for %d extension(s)", self.query_url, len(identifiers))
        payload = self._post(body, headers)
        return parse_query_response(payload, identifiers, include_preview=include_preview)

    def _post(self, body: dict[str, Any], headers: dict[str, str]) -> Any:
        """Send the query and decode the JSON response."""
        try:
            if self._client is not None:
                response = self._client.post(self.query_url, json=body, headers=headers)
            else:
                with httpx.Client(timeout=self._timeout) as client:
                    response = client.post(self.query_url, json=body, headers=headers)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            msg = f"Gallery query failed with HTTP {e.response.status_code}"
            raise ResolutionError(msg) from e
        except httpx.HTTPError as e:
            raise ResolutionError(f"Gallery connection error: {e}") from e
        except ValueError as e:
            raise ResolutionError(f"Gallery returned invalid JSON: {e}") from e


def _get_property(version: Mapping[str, Any], key: str) -> str | None:
    """Look up a version property by key."""
    for prop in version.get("properties") or ():
        if isinstance(prop, dict) and prop.get("key") == key:
            value = prop.get("value")
            return str(value) if value is not None else None
    return None


def _download_url(version: Mapping[str, Any]) -> str | None:
    """Build the package download URL for a gallery version."""
    for key in ("assetUri", "fallbackAssetUri"):
        base = version.get(key)
        if base:
            return f"{str(base).rstrip('/')}/{VSIX_PACKAGE_ASSET}"
    return None


def _is_preview(extension: Mapping[str, Any]) -> bool:
    flags = str(extension.get("flags") or "")
    return "preview" in {flag.strip().lower() for flag in flags.split(",")}


def parse_extension(
    extension: Mapping[str, Any],
    requested: Mapping[str, str],
) -> CatalogEntry | None:
    """Convert one gallery extension record into a catalog entry.

    Args:
        extension: Raw gallery record.
        requested: Requested identifiers keyed by their casefolded form.

    Returns:
        The entry, or None if the record matches no requested identifier
        or has no downloadable version.

    Raises:
        ResolutionError: If the publisher or versions are malformed.
    """
    publisher = extension.get("publisher") or {}
    versions = extension.get("versions") or []
    if (
        not isinstance(publisher, dict)
        or not isinstance(versions, list)
        or not all(isinstance(version, dict) for version in versions)
    ):
        raise ResolutionError("Gallery response contains a malformed extension")
    full_name = f"{publisher.get('publisherName', '')}.{extension.get('extensionName', '')}"

    for version in versions:
        url = _download_url(version)
        if url is None:
            continue

        candidates = [_get_property(version, VSIX_ID_PROPERTY), full_name]
        identifier = next(
            (requested[c.casefold()] for c in candidates if c and c.casefold() in requested),
            None,
        )
        if identifier is None:
            return None

        return CatalogEntry(
            identifier=identifier,
            name=str(extension.get("displayName") or full_name),
            download_url=url,
            version=version.get("version"),
            publisher=publisher.get("displayName") or publisher.get("publisherName"),
            description=extension.get("shortDescription"),
            metadata=dict(extension),
        )

    return None


def parse_query_response(
    payload: Any,
    identifiers: Sequence[str],
    include_preview: bool = False,
) -> list[CatalogEntry]:
    """Extract catalog entries from an extension query response.

    Args:
        payload: Decoded JSON response.
        identifiers: Identifiers that were requested.
        include_preview: Whether preview extensions are kept.

    Returns:
        Entries in gallery order, one per recognized identifier.

    Raises:
        ResolutionError: If the payload does not have the expected shape.
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("results"), list):
        raise ResolutionError("Gallery response has no 'results' list")

    requested = {identifier.casefold(): identifier for identifier in identifiers}
    entries: list[CatalogEntry] = []
    seen: set[str] = set()

    for result in payload["results"]:
        if not isinstance(result, dict):
            raise ResolutionError("Gallery response contains a malformed result")
        extensions = result.get("extensions") or []
        if not isinstance(extensions, list):
            raise ResolutionError("Gallery response contains a malformed result")
        for extension in extensions:
            if not isinstance(extension, dict):
                raise ResolutionError("Gallery response contains a malformed extension")
            if not include_preview and _is_preview(extension):
                logger.debug("Skipping preview extension %s", extension.get("extensionName"))
                continue
            entry = parse_extension(extension, requested)
            if entry is None:
                continue
            key = entry.identifier.casefold()
            if key in seen:
                continue
            seen.add(key)
            entries.append(entry)

    missing = len(requested) - len(entries)
    if missing:
        logger.info("%d identifier(s) not recognized by the gallery", missing)
    return entries
