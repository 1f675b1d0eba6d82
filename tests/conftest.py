"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
from extpack.models.catalog import CatalogEntry


@pytest.fixture
def manifest_data() -> dict[str, Any]:
    """Sample manifest document."""
    return {
        "id": "b0c3f1a4-0000-4000-8000-000000000001",
        "name": "My Visual Studio extensions",
        "description": "Extensions I use everywhere",
        "version": "1.0",
        "extensions": [
            {"name": "Add New File", "vsixId": "MadsKristensen.AddNewFile"},
            {"name": "File Icons", "vsixId": "MadsKristensen.FileIcons"},
            {"name": "Trailing Whitespace", "vsixId": "MadsKristensen.TrailingWhitespace"},
        ],
    }


@pytest.fixture
def manifest_file(tmp_path: Path, manifest_data: dict[str, Any]) -> Path:
    """Sample manifest written to a .vsext file."""
    path = tmp_path / "extensions.vsext"
    path.write_text(json.dumps(manifest_data), encoding="utf-8")
    return path


@pytest.fixture
def make_entry() -> Callable[..., CatalogEntry]:
    """Factory for catalog entries."""

    def _make(identifier: str, **kwargs: Any) -> CatalogEntry:
        defaults: dict[str, Any] = {
            "name": identifier.split(".")[-1],
            "download_url": f"https://gallery.test/{identifier}.vsix",
            "version": "1.0.0",
        }
        defaults.update(kwargs)
        return CatalogEntry(identifier=identifier, **defaults)

    return _make


@pytest.fixture
def make_gallery_extension() -> Callable[..., dict[str, Any]]:
    """Factory for raw gallery extension records."""

    def _make(
        publisher: str,
        name: str,
        *,
        vsix_id: str | None = None,
        flags: str = "validated, public",
        version: str = "1.0.0",
        asset_uri: str | None = "default",
    ) -> dict[str, Any]:
        properties = []
        if vsix_id is not None:
            properties.append({"key": "Microsoft.VisualStudio.Services.VsixId", "value": vsix_id})
        version_record: dict[str, Any] = {
            "version": version,
            "flags": "validated",
            "properties": properties,
        }
        if asset_uri == "default":
            version_record["assetUri"] = f"https://cdn.gallery.test/{publisher}/{name}/{version}"
        elif asset_uri is not None:
            version_record["assetUri"] = asset_uri
        return {
            "publisher": {"publisherName": publisher, "displayName": publisher.title()},
            "extensionName": name,
            "displayName": name.title(),
            "shortDescription": f"{name} extension",
            "flags": flags,
            "versions": [version_record],
        }

    return _make
