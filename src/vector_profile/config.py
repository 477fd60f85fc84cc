"""Run options for a profiling run."""

from __future__ import annotations

import re
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from .errors import ConfigurationError
from .reader import FEATURE_TYPES

SEPARATORS = {
    "pipe": "|",
    "comma": ",",
    "space": " ",
    "tab": "\t",
    "newline": "\n",
}

_LEGAL_MAP_NAME = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")


def resolve_separator(name: str) -> str:
    """Character for a separator name; unknown names are used literally."""
    return SEPARATORS.get(name, name)


class ProfileOptions(BaseModel):
    """Everything a profiling run needs to know before it touches any geometry."""

    input: Path
    types: list[str] = Field(default_factory=lambda: list(FEATURE_TYPES))
    east_north: list[float] | None = None
    profile_map: Path | None = None
    profile_where: str | None = None
    profile_layer: int = Field(1, ge=1)
    buffer: float = Field(10.0, ge=0)
    output: str = "-"
    separator: str = "pipe"
    dp: int = Field(2, ge=0, le=32)
    where: str | None = None
    layer: int = Field(1, ge=1)
    database: Path | None = None
    table: str | None = None
    no_header: bool = False
    no_z: bool = False
    map_output: Path | None = None

    @field_validator("types")
    @classmethod
    def _check_types(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("At least one feature type is required")
        unknown = [t for t in value if t not in FEATURE_TYPES]
        if unknown:
            raise ValueError(f"Unsupported feature type(s): {', '.join(unknown)}")
        return value

    @field_validator("map_output")
    @classmethod
    def _check_map_name(cls, value: Path | None) -> Path | None:
        if value is not None:
            stem = value.stem if value.suffix.lower() == ".shp" else value.name
            if not _LEGAL_MAP_NAME.match(stem):
                raise ValueError(f"<{stem}> is not a valid vector map name")
        return value

    @model_validator(mode="after")
    def _check_profile_source(self) -> ProfileOptions:
        if self.profile_where is not None and self.profile_map is None:
            raise ValueError(
                "No input profile map name provided, but WHERE conditions for it have been set"
            )
        if self.profile_map is not None and self.east_north is not None:
            raise ValueError(
                "Profile input coordinates and vector map are provided. Please provide only one of them"
            )
        if self.profile_map is None and self.east_north is None:
            raise ValueError(
                "No profile input coordinates nor vector map are provided. Please provide one of them"
            )
        if self.east_north is not None:
            if len(self.east_north) % 2:
                raise ValueError("Profile coordinates must come in east,north pairs")
            if len(self.east_north) < 4:
                raise ValueError("At least profile start and end coordinates are required")
        if self.table is not None and self.database is None:
            raise ValueError("A table name needs a database to look it up in")
        return self

    @property
    def delimiter(self) -> str:
        return resolve_separator(self.separator)

    @property
    def profile_coords(self) -> list[tuple[float, float]]:
        coords = self.east_north or []
        return list(zip(coords[0::2], coords[1::2]))


def load_options(**values) -> ProfileOptions:
    """Validate run options, turning validation failures into ConfigurationError."""
    try:
        return ProfileOptions(**values)
    except ValidationError as e:
        messages = "; ".join(err["msg"].removeprefix("Value error, ") for err in e.errors())
        raise ConfigurationError(messages) from e
