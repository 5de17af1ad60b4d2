"""Pydantic models for asset index documents (``assets/indexes/<id>.json``)."""

import re

from pydantic import BaseModel, ConfigDict, Field, field_validator

_HASH_RE = re.compile(r"^[0-9a-f]{40}$")


class AssetObject(BaseModel):
    """A content-addressed asset payload, identified by its SHA-1 hash."""

    model_config = ConfigDict(frozen=True)

    hash: str
    size: int = Field(ge=0)

    @field_validator("hash")
    @classmethod
    def _sha1_hex(cls, v: str) -> str:
        v = v.lower()
        if not _HASH_RE.match(v):
            raise ValueError(f"ERROR: asset hash is not a SHA-1 hex digest: {v!r}")
        return v

    @property
    def location(self) -> str:
        """Path of the object relative to ``assets/objects``."""
        return f"{self.hash[:2]}/{self.hash}"


class AssetIndex(BaseModel):
    """Logical asset names mapped to their backing objects.

    ``virtual`` indexes are read by name from ``assets/virtual/<id>``;
    ``map_to_resources`` indexes are read by name from ``<run dir>/resources``.
    """

    model_config = ConfigDict(frozen=True)

    objects:          dict[str, AssetObject] = Field(default_factory=dict)
    virtual:          bool = False
    map_to_resources: bool = False

    @property
    def needs_mirror(self) -> bool:
        return self.virtual or self.map_to_resources
