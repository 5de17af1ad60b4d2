"""Unit tests for app.config.

Covers:
  1. Game directory root priority: argument > GAME_DIR > platform default.
  2. Validation of settings values.
  3. Launcher-facing settings defaults.
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from app.config import (
    DEFAULT_MAX_INHERITANCE_DEPTH,
    DownloadProvider,
    GameDirSettings,
    LauncherSettings,
    Locale,
    ProxySettings,
    ProxyType,
    default_game_dir,
)

# ---------------------------------------------------------------------------
# Root resolution
# ---------------------------------------------------------------------------


def test_explicit_root_wins(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GAME_DIR", str(tmp_path / "from-env"))

    settings = GameDirSettings.load(tmp_path / "explicit")

    assert settings.root == (tmp_path / "explicit").resolve()


def test_env_var_used_when_no_root(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GAME_DIR", str(tmp_path / "from-env"))

    assert GameDirSettings.load().root == (tmp_path / "from-env").resolve()


def test_platform_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GAME_DIR", raising=False)

    assert GameDirSettings.load().root == default_game_dir().resolve()


def test_default_game_dir_per_os(monkeypatch: pytest.MonkeyPatch) -> None:
    home = Path.home()

    monkeypatch.setattr("app.config.platform.system", lambda: "Linux")
    assert default_game_dir() == home / ".minecraft"

    monkeypatch.setattr("app.config.platform.system", lambda: "Darwin")
    assert default_game_dir() == home / "Library" / "Application Support" / "minecraft"

    monkeypatch.setattr("app.config.platform.system", lambda: "Windows")
    assert default_game_dir() == home / "AppData" / "Roaming" / ".minecraft"


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def test_settings_defaults(tmp_path: Path) -> None:
    settings = GameDirSettings.load(tmp_path)

    assert settings.isolated is False
    assert settings.strict_assets is False
    assert settings.max_inheritance_depth == DEFAULT_MAX_INHERITANCE_DEPTH == 64


def test_max_depth_must_be_positive(tmp_path: Path) -> None:
    with pytest.raises(ValidationError):
        GameDirSettings.load(tmp_path, max_inheritance_depth=0)


def test_settings_are_frozen(tmp_path: Path) -> None:
    settings = GameDirSettings.load(tmp_path)

    with pytest.raises(ValidationError):
        settings.isolated = True  # type: ignore[misc]


def test_proxy_port_range() -> None:
    assert ProxySettings(type=ProxyType.HTTP, host="proxy", port=8080).enabled is True

    with pytest.raises(ValidationError):
        ProxySettings(port=0)
    with pytest.raises(ValidationError):
        ProxySettings(port=70000)


def test_direct_proxy_is_disabled() -> None:
    assert ProxySettings(host="proxy", port=1080).enabled is False
    assert ProxySettings(type=ProxyType.SOCKS).enabled is False


# ---------------------------------------------------------------------------
# Launcher settings
# ---------------------------------------------------------------------------


def test_launcher_settings_defaults() -> None:
    settings = LauncherSettings()

    assert settings.download_provider is DownloadProvider.MOJANG
    assert settings.locale is Locale.DEFAULT
    assert settings.proxy.type is ProxyType.DIRECT
    assert settings.game_dir is None


def test_launcher_settings_from_strings(tmp_path: Path) -> None:
    settings = LauncherSettings.model_validate({
        "download_provider": "bmclapi",
        "locale": "zh_CN",
        "proxy": {"type": "socks", "host": "127.0.0.1", "port": 1080},
        "game_dir": {"root": str(tmp_path)},
    })

    assert settings.download_provider is DownloadProvider.BMCLAPI
    assert settings.locale is Locale.ZH_CN
    assert settings.proxy.enabled is True
    assert settings.game_dir is not None
    assert settings.game_dir.root == tmp_path
