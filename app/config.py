"""Configuration objects for the game directory core.

Settings are plain pydantic models passed explicitly to whoever needs them.
There is no process-wide "current settings" object.

Game directory root resolution (first match wins):
  1. Explicit ``root`` argument
  2. ``GAME_DIR`` environment variable
  3. Platform default (``%APPDATA%/.minecraft``, ``~/Library/Application
     Support/minecraft`` or ``~/.minecraft``)
"""

import os
import platform
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_MAX_INHERITANCE_DEPTH = 64


def default_game_dir() -> Path:
    """Return the conventional game directory for the running OS."""
    home = Path.home()
    return {
        "Windows": home / "AppData" / "Roaming" / ".minecraft",
        "Darwin": home / "Library" / "Application Support" / "minecraft",
    }.get(platform.system(), home / ".minecraft")


class GameDirSettings(BaseModel):
    """Settings that shape how a game directory is laid out and read."""

    model_config = ConfigDict(frozen=True)

    root: Path
    """Game directory root holding ``versions/``, ``libraries/`` and ``assets/``."""

    isolated: bool = False
    """Give every version its own run directory (its version root)."""

    strict_assets: bool = False
    """Re-hash mirrored assets instead of trusting existence + size."""

    max_inheritance_depth: int = Field(default=DEFAULT_MAX_INHERITANCE_DEPTH, ge=1)
    """Longest inheritance chain the resolver accepts."""

    @classmethod
    def load(cls, root: str | Path | None = None, **overrides) -> "GameDirSettings":
        """Build settings, resolving *root* from the environment when omitted."""
        chosen = root or os.environ.get("GAME_DIR") or default_game_dir()
        return cls(root=Path(chosen).expanduser().resolve(), **overrides)


class DownloadProvider(str, Enum):
    MOJANG = "mojang"
    BMCLAPI = "bmclapi"
    MCBBS = "mcbbs"


class Locale(str, Enum):
    DEFAULT = "default"
    EN = "en"
    ZH = "zh"
    ZH_CN = "zh_CN"


class ProxyType(str, Enum):
    DIRECT = "direct"
    HTTP = "http"
    SOCKS = "socks"


class ProxySettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: ProxyType = ProxyType.DIRECT
    host: str = ""
    port: int | None = None
    username: str = ""
    password: str = ""

    @field_validator("port")
    @classmethod
    def _port_in_range(cls, v: int | None) -> int | None:
        if v is not None and not 0 < v < 65536:
            raise ValueError(f"ERROR: proxy port out of range: {v}")
        return v

    @property
    def enabled(self) -> bool:
        return self.type is not ProxyType.DIRECT and bool(self.host)


class LauncherSettings(BaseModel):
    """User-facing options consumed by the download and UI collaborators.

    The core never reads these; they are modelled here so collaborators share
    one explicit, validated configuration object.
    """

    model_config = ConfigDict(frozen=True)

    download_provider: DownloadProvider = DownloadProvider.MOJANG
    locale: Locale = Locale.DEFAULT
    proxy: ProxySettings = Field(default_factory=ProxySettings)
    game_dir: GameDirSettings | None = None
