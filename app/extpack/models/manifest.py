"""Manifest models for extension packs.

This module defines the Pydantic models representing the ``.vsext``
JSON document that lists the extensions a user wants installed.
"""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ExtensionRef(BaseModel):
    """A single extension listed in the manifest.

    Attributes:
        vsix_id: Gallery identifier of the extension (``vsixId`` in JSON).
        name: Optional human-readable name, informational only.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    vsix_id: Annotated[str, Field(alias="vsixId", description="Gallery identifier")]
    name: Annotated[str | None, Field(description="Display name")] = None

    @field_validator("vsix_id")
    @classmethod
    def validate_vsix_id(cls, v: str) -> str:
        """Strip whitespace and reject empty identifiers."""
        value = v.strip()
        if not value:
            msg = "vsixId cannot be empty"
            raise ValueError(msg)
        return value


class Manifest(BaseModel):
    """Extension pack manifest.

    The manifest is loaded once from the user-supplied file and is
    read-only afterwards.

    Attributes:
        id: Optional identifier of the pack itself.
        name: Optional pack name.
        description: Optional pack description.
        version: Optional pack version.
        extensions: Ordered list of wanted extensions.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: Annotated[str | None, Field(description="Pack identifier")] = None
    name: Annotated[str | None, Field(description="Pack name")] = None
    description: Annotated[str | None, Field(description="Pack description")] = None
    version: Annotated[str | None, Field(description="Pack version")] = None
    extensions: Annotated[list[ExtensionRef], Field(description="Wanted extensions")]

    @property
    def identifiers(self) -> list[str]:
        """Ordered identifiers with case-insensitive duplicates removed.

        The first occurrence of an identifier wins.
        """
        seen: set[str] = set()
        result: list[str] = []
        for ext in self.extensions:
            key = ext.vsix_id.casefold()
            if key in seen:
                continue
            seen.add(key)
            result.append(ext.vsix_id)
        return result

    @property
    def extension_count(self) -> int:
        """Number of distinct extensions in the manifest."""
        return len(self.identifiers)
