"""Typed models for the on-disk version manifest (``versions/<id>/<id>.json``).

Field names are snake_case in Python and keep the camelCase keys of the
document as aliases, so ``Manifest.parse(json.load(fp))`` and
``manifest.to_document()`` round-trip the file format.

Models are frozen; a re-scan builds new instances instead of mutating.
"""

import json
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from app.errors import ParseError

_MODEL_CONFIG = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class OsRule(BaseModel):
    model_config = _MODEL_CONFIG

    name:    str | None = None
    version: str | None = None  # regular expression matched against the OS version
    arch:    str | None = None


class Rule(BaseModel):
    """One allow/disallow entry of a library or argument rule list."""

    model_config = _MODEL_CONFIG

    action:   Literal["allow", "disallow"]
    os:       OsRule | None = None
    features: dict[str, bool] | None = None


class ExtractRules(BaseModel):
    """Which archive entries of a natives jar get extracted."""

    model_config = _MODEL_CONFIG

    exclude: tuple[str, ...] = ()

    def should_extract(self, entry: str) -> bool:
        return not any(entry.startswith(prefix) for prefix in self.exclude)


class Library(BaseModel):
    """A versioned dependency, identified by ``group:artifact:version[:classifier]``."""

    model_config = _MODEL_CONFIG

    name:      str
    rules:     tuple[Rule, ...] | None = None
    natives:   dict[str, str] | None = None
    extract:   ExtractRules | None = None
    downloads: dict[str, Any] | None = None
    url:       str | None = None

    @field_validator("name")
    @classmethod
    def _valid_coordinate(cls, v: str) -> str:
        parts = v.split(":")
        if len(parts) < 3 or not all(parts[:3]):
            raise ValueError(f"ERROR: invalid library coordinate: {v!r}")
        return v

    @property
    def group(self) -> str:
        return self.name.split(":")[0]

    @property
    def artifact(self) -> str:
        return self.name.split(":")[1]

    @property
    def version(self) -> str:
        return self.name.split(":")[2]

    @property
    def classifier(self) -> str | None:
        parts = self.name.split(":")
        return parts[3] if len(parts) > 3 and parts[3] else None

    @property
    def coordinate(self) -> tuple[str, str, str, str | None]:
        return (self.group, self.artifact, self.version, self.classifier)

    @property
    def is_native(self) -> bool:
        return self.natives is not None


class AssetIndexInfo(BaseModel):
    """Reference from a version to the asset index it uses."""

    model_config = _MODEL_CONFIG

    id:         str
    sha1:       str = ""
    size:       int = 0
    total_size: int = Field(default=0, alias="totalSize")
    url:        str = ""


class LoggingFile(BaseModel):
    model_config = _MODEL_CONFIG

    id:   str
    sha1: str = ""
    size: int = 0
    url:  str = ""


class LoggingInfo(BaseModel):
    """Logging configuration for one side (``client``/``server``)."""

    model_config = _MODEL_CONFIG

    file:     LoggingFile
    argument: str = ""
    type:     str = ""


class Arguments(BaseModel):
    """Modern launch arguments: plain strings or rule-guarded objects."""

    model_config = _MODEL_CONFIG

    game: tuple[str | dict[str, Any], ...] = ()
    jvm:  tuple[str | dict[str, Any], ...] = ()


class Manifest(BaseModel):
    """Raw declared data of one version, before inheritance resolution."""

    model_config = _MODEL_CONFIG

    id:                       str
    parent_id:                str | None = Field(default=None, alias="inheritsFrom")
    jar:                      str | None = None
    libraries:                tuple[Library, ...] = ()
    asset_index:              AssetIndexInfo | None = Field(default=None, alias="assetIndex")
    assets:                   str | None = None
    logging:                  dict[str, LoggingInfo] | None = None
    main_class:               str | None = Field(default=None, alias="mainClass")
    minecraft_arguments:      str | None = Field(default=None, alias="minecraftArguments")
    arguments:                Arguments | None = None
    type:                     str | None = None
    release_time:             str | None = Field(default=None, alias="releaseTime")
    time:                     str | None = None
    minimum_launcher_version: int | None = Field(default=None, alias="minimumLauncherVersion")

    @field_validator("id")
    @classmethod
    def _id_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("ERROR: manifest id must not be empty")
        return v

    @field_validator("parent_id")
    @classmethod
    def _parent_not_empty(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            raise ValueError("ERROR: inheritsFrom must not be empty")
        return v

    @model_validator(mode="after")
    def _parent_not_self(self) -> "Manifest":
        if self.parent_id == self.id:
            raise ValueError(f"ERROR: version {self.id} inherits from itself")
        return self

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def parse(cls, data: Any) -> "Manifest":
        """Build a manifest from a decoded JSON document.

        Raises:
            ParseError: If *data* is not an object or fails validation.
        """
        if not isinstance(data, dict):
            raise ParseError("ERROR: version manifest must be a JSON object")
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            first = exc.errors()[0]
            where = ".".join(str(p) for p in first["loc"]) or "root"
            raise ParseError(
                f"ERROR: invalid version manifest at {where}: {first['msg']}"
            ) from exc

    @classmethod
    def parse_file(cls, path: Path) -> "Manifest":
        """Read and parse *path*.

        Raises:
            ParseError: If the file is not UTF-8 JSON or not a valid manifest.
            OSError:    If the file cannot be read.
        """
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ParseError(f"ERROR: malformed JSON in {path}: {exc}") from exc
        except UnicodeDecodeError as exc:
            raise ParseError(f"ERROR: {path} is not valid UTF-8: {exc}") from exc
        return cls.parse(data)

    def to_document(self) -> dict[str, Any]:
        """Dump back to the on-disk key names, omitting unset fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def __eq__(self, other: object) -> bool:
        # Effective and raw manifests with the same fields are equal.
        if not isinstance(other, Manifest):
            return NotImplemented
        return self.model_dump() == other.model_dump()

    def __hash__(self) -> int:
        return hash(self.id)

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def actual_asset_index(self) -> AssetIndexInfo:
        """The declared asset index, or one named after the legacy ``assets`` id."""
        if self.asset_index is not None:
            return self.asset_index
        return AssetIndexInfo(id=self.assets or "legacy")
