"""Unit tests for LocalVersionRepository and ReadOnlyVersionRepository.

Covers:
  1. refresh(): state transitions, skip-and-warn for broken directories,
     directory name authoritative over the declared id.
  2. Concurrent refreshes publish whole snapshots.
  3. Query and path delegation (jar of an inheriting version, missing files).
  4. rename_version(): success, target collision, rollback on failure
     (including a manifest rewritten to a non-object after the scan).
  5. Read-only repositories refuse to rename.
"""

import hashlib
import json
import threading
from pathlib import Path

import pytest

from app.config import GameDirSettings
from app.errors import (
    MissingAncestorError,
    RepositoryIOError,
    UnsupportedOperationError,
    VersionNotFoundError,
)
from app.models.manifest import Library, Manifest
from models.assets import AssetObject
from repository.base import RepositoryState
from repository.local import LocalVersionRepository
from repository.readonly import ReadOnlyVersionRepository
from resolvers.platform import Platform
from storage.layout import GameDirLayout

LINUX = Platform(os_name="linux", arch="x86_64", arch_bits=64)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_version(root: Path, version_id: str, jar: bool = False, **document) -> Path:
    """Create versions/<id>/<id>.json (and optionally the jar)."""
    version_dir = root / "versions" / version_id
    version_dir.mkdir(parents=True, exist_ok=True)
    path = version_dir / f"{version_id}.json"
    path.write_text(json.dumps({"id": version_id, **document}), encoding="utf-8")
    if jar:
        (version_dir / f"{version_id}.jar").write_bytes(b"PK\x03\x04")
    return path


def _repo(root: Path, **kwargs) -> LocalVersionRepository:
    repo = LocalVersionRepository(GameDirLayout(root, **kwargs))
    repo.refresh()
    return repo


# ---------------------------------------------------------------------------
# Scanning
# ---------------------------------------------------------------------------


def test_state_transitions(tmp_path: Path) -> None:
    _write_version(tmp_path, "1.12.2")
    repo = LocalVersionRepository(GameDirLayout(tmp_path))

    assert repo.state is RepositoryState.UNINITIALIZED
    assert repo.get_version_count() == 0

    repo.refresh()

    assert repo.state is RepositoryState.READY
    assert repo.has_version("1.12.2")


def test_missing_versions_directory_is_empty_catalog(tmp_path: Path) -> None:
    repo = _repo(tmp_path)

    assert repo.get_version_count() == 0
    assert repo.warnings == ()


def test_broken_versions_are_skipped_with_warnings(tmp_path: Path) -> None:
    _write_version(tmp_path, "1.12.2")
    broken = tmp_path / "versions" / "broken"
    broken.mkdir(parents=True)
    (broken / "broken.json").write_text("{not json", encoding="utf-8")
    (tmp_path / "versions" / "empty").mkdir()
    _write_version(tmp_path, "self-ref", inheritsFrom="self-ref")

    repo = _repo(tmp_path)

    assert [m.id for m in repo.get_versions()] == ["1.12.2"]
    assert sorted(w.version_id for w in repo.warnings) == ["broken", "empty", "self-ref"]


def test_non_utf8_manifest_is_skipped(tmp_path: Path) -> None:
    """A manifest that is not valid UTF-8 is one warning, not a failed scan."""
    _write_version(tmp_path, "good")
    bad = tmp_path / "versions" / "bad"
    bad.mkdir(parents=True)
    (bad / "bad.json").write_bytes(b'{"id": "bad\xff"}')

    repo = _repo(tmp_path)

    assert repo.state is RepositoryState.READY
    assert [m.id for m in repo.get_versions()] == ["good"]
    assert [w.version_id for w in repo.warnings] == ["bad"]
    assert "UTF-8" in repo.warnings[0].reason


def test_directory_name_wins_over_declared_id(tmp_path: Path) -> None:
    path = _write_version(tmp_path, "renamed-by-hand")
    path.write_text(json.dumps({"id": "original"}), encoding="utf-8")

    repo = _repo(tmp_path)

    assert repo.has_version("renamed-by-hand")
    assert not repo.has_version("original")
    assert repo.get_version("renamed-by-hand").id == "renamed-by-hand"


def test_refresh_picks_up_changes(tmp_path: Path) -> None:
    repo = _repo(tmp_path)
    _write_version(tmp_path, "new")

    assert not repo.has_version("new")
    repo.refresh()
    assert repo.has_version("new")


def test_warnings_do_not_accumulate(tmp_path: Path) -> None:
    (tmp_path / "versions" / "empty").mkdir(parents=True)
    repo = _repo(tmp_path)

    repo.refresh()

    assert len(repo.warnings) == 1


def test_concurrent_refresh_publishes_whole_snapshots(tmp_path: Path) -> None:
    """Many threads refreshing a 100-directory tree all see 99 versions + 1 warning."""
    for i in range(99):
        _write_version(tmp_path, f"v{i:03d}")
    corrupt = tmp_path / "versions" / "zz-corrupt"
    corrupt.mkdir()
    (corrupt / "zz-corrupt.json").write_text("[", encoding="utf-8")

    repo = LocalVersionRepository(GameDirLayout(tmp_path))
    counts: list[int] = []
    errors: list[BaseException] = []

    def _refresh() -> None:
        try:
            catalog = repo.refresh()
            counts.append(len(catalog.versions))
            counts.append(repo.get_version_count())
        except BaseException as exc:  # pragma: no cover - reported below
            errors.append(exc)

    threads = [threading.Thread(target=_refresh) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert set(counts) == {99}
    assert repo.state is RepositoryState.READY
    assert [w.version_id for w in repo.warnings] == ["zz-corrupt"]


# ---------------------------------------------------------------------------
# Queries and paths
# ---------------------------------------------------------------------------


def test_get_version_not_found(tmp_path: Path) -> None:
    repo = _repo(tmp_path)

    with pytest.raises(VersionNotFoundError):
        repo.get_version("nope")


def test_version_jar_comes_from_ancestor(tmp_path: Path) -> None:
    """A version without its own jar uses the ancestor's jar path."""
    _write_version(tmp_path, "1.12.2", jar=True)
    _write_version(tmp_path, "1.12.2-forge", inheritsFrom="1.12.2")
    repo = _repo(tmp_path)

    expected = tmp_path / "versions" / "1.12.2" / "1.12.2.jar"
    assert repo.get_version_jar("1.12.2-forge") == expected
    assert repo.get_version_jar(repo.resolve("1.12.2-forge")) == expected
    assert repo.get_version_jar("1.12.2") == expected


def test_path_accessors_delegate_to_layout(tmp_path: Path) -> None:
    _write_version(tmp_path, "1.12.2")
    repo = _repo(tmp_path, isolated=True)
    lib = Library(name="com.mojang:patchy:1.1")

    assert repo.get_version_root("1.12.2") == tmp_path / "versions" / "1.12.2"
    assert repo.get_run_directory("1.12.2") == tmp_path / "versions" / "1.12.2"
    assert repo.get_native_directory("1.12.2") == tmp_path / "versions" / "1.12.2" / "1.12.2-natives"
    assert repo.get_library_file(lib) == repo.layout.library_file(lib)
    assert repo.get_asset_directory("1.12.2", "1.12") == tmp_path / "assets"
    assert repo.get_index_file("1.12.2", "1.12") == tmp_path / "assets" / "indexes" / "1.12.json"


def test_asset_accessors_delegate_to_store(tmp_path: Path) -> None:
    content = b"asset"
    digest = hashlib.sha1(content).hexdigest()
    obj_path = tmp_path / "assets" / "objects" / digest[:2] / digest
    obj_path.parent.mkdir(parents=True)
    obj_path.write_bytes(content)
    index = tmp_path / "assets" / "indexes" / "1.12.json"
    index.parent.mkdir(parents=True)
    index.write_text(json.dumps({"objects": {"a.ogg": {"hash": digest, "size": 5}}}), encoding="utf-8")
    repo = _repo(tmp_path)

    assert repo.get_asset_index("1.12.2", "1.12").objects["a.ogg"].hash == digest
    assert repo.get_asset_object("1.12.2", "1.12", "a.ogg") == obj_path
    assert repo.get_asset_object("1.12.2", "1.12", AssetObject(hash=digest, size=5)) == obj_path
    assert repo.get_actual_asset_directory("1.12.2", "1.12") == tmp_path / "assets"


def test_resolve_is_cached_per_snapshot(tmp_path: Path) -> None:
    _write_version(tmp_path, "base", mainClass="Old")
    _write_version(tmp_path, "child", inheritsFrom="base")
    repo = _repo(tmp_path)

    first = repo.resolve("child")
    assert repo.resolve("child") is first

    _write_version(tmp_path, "base", mainClass="New")
    repo.refresh()

    assert repo.resolve("child").main_class == "New"


def test_resolve_missing_ancestor(tmp_path: Path) -> None:
    _write_version(tmp_path, "orphan", inheritsFrom="gone")
    repo = _repo(tmp_path)

    assert repo.has_version("orphan")
    with pytest.raises(MissingAncestorError):
        repo.resolve("orphan")


def test_find_missing(tmp_path: Path) -> None:
    _write_version(
        tmp_path,
        "1.12.2",
        assetIndex={"id": "1.12"},
        libraries=[
            {"name": "com.mojang:patchy:1.1"},
            {"name": "org.lwjgl.lwjgl:lwjgl-platform:2.9.4", "natives": {"linux": "natives-linux"}},
        ],
        logging={"client": {"file": {"id": "client-1.12.xml"}, "argument": "", "type": "log4j2-xml"}},
    )
    repo = _repo(tmp_path)
    patchy = tmp_path / "libraries" / "com" / "mojang" / "patchy" / "1.1" / "patchy-1.1.jar"
    patchy.parent.mkdir(parents=True)
    patchy.write_bytes(b"PK")

    missing = repo.find_missing("1.12.2", LINUX)

    assert [(m.kind, m.name) for m in missing] == [
        ("jar", "1.12.2"),
        ("native", "org.lwjgl.lwjgl:lwjgl-platform:2.9.4"),
        ("asset_index", "1.12"),
        ("logging", "client-1.12.xml"),
    ]
    assert missing[1].path.name == "lwjgl-platform-2.9.4-natives-linux.jar"


def test_from_settings(tmp_path: Path) -> None:
    settings = GameDirSettings.load(tmp_path, isolated=True, strict_assets=True, max_inheritance_depth=3)

    repo = LocalVersionRepository.from_settings(settings)

    assert repo.layout.root == tmp_path.resolve()
    assert repo.layout.isolated is True
    assert repo.store.strict is True
    assert repo.resolver.max_depth == 3


# ---------------------------------------------------------------------------
# Rename
# ---------------------------------------------------------------------------


def test_rename_moves_directory_manifest_and_jar(tmp_path: Path) -> None:
    _write_version(tmp_path, "old", jar=True, mainClass="Main", custom={"kept": True})
    repo = _repo(tmp_path)

    renamed = repo.rename_version("old", "new")

    assert renamed.id == "new"
    assert not repo.has_version("old")
    assert repo.has_version("new")
    new_dir = tmp_path / "versions" / "new"
    assert not (tmp_path / "versions" / "old").exists()
    assert (new_dir / "new.jar").read_bytes() == b"PK\x03\x04"
    document = json.loads((new_dir / "new.json").read_text(encoding="utf-8"))
    assert document == {"id": "new", "mainClass": "Main", "custom": {"kept": True}}
    assert not list(new_dir.glob(".*.tmp"))


def test_rename_survives_refresh(tmp_path: Path) -> None:
    _write_version(tmp_path, "old")
    repo = _repo(tmp_path)

    repo.rename_version("old", "new")
    repo.refresh()

    assert [m.id for m in repo.get_versions()] == ["new"]
    assert repo.warnings == ()


def test_rename_to_existing_id_fails(tmp_path: Path) -> None:
    _write_version(tmp_path, "a")
    _write_version(tmp_path, "b")
    repo = _repo(tmp_path)

    with pytest.raises(RepositoryIOError):
        repo.rename_version("a", "b")

    assert repo.has_version("a")
    assert (tmp_path / "versions" / "a" / "a.json").is_file()


def test_rename_unknown_version(tmp_path: Path) -> None:
    repo = _repo(tmp_path)

    with pytest.raises(VersionNotFoundError):
        repo.rename_version("ghost", "new")


def test_rename_invalid_target_id(tmp_path: Path) -> None:
    _write_version(tmp_path, "a")
    repo = _repo(tmp_path)

    with pytest.raises(ValueError):
        repo.rename_version("a", "../escape")


def test_rename_rolls_back_on_failure(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """A failure after the moves leaves the old layout and catalog intact."""
    original = _write_version(tmp_path, "old", jar=True, mainClass="Main")
    before = original.read_text(encoding="utf-8")
    repo = _repo(tmp_path)

    def _boom(path: Path, document: dict) -> None:
        raise OSError("disk full")

    monkeypatch.setattr("repository.local._write_document", _boom)

    with pytest.raises(RepositoryIOError) as exc_info:
        repo.rename_version("old", "new")

    assert "disk full" in str(exc_info.value)
    assert repo.has_version("old")
    assert not repo.has_version("new")
    assert not (tmp_path / "versions" / "new").exists()
    assert original.read_text(encoding="utf-8") == before
    assert (tmp_path / "versions" / "old" / "old.jar").is_file()


def test_rename_rolls_back_when_manifest_is_not_an_object(tmp_path: Path) -> None:
    """A manifest replaced by a JSON array after the scan is rolled back, not half-renamed."""
    original = _write_version(tmp_path, "old", jar=True)
    repo = _repo(tmp_path)
    original.write_text("[1]", encoding="utf-8")

    with pytest.raises(RepositoryIOError) as exc_info:
        repo.rename_version("old", "new")

    assert "not a JSON object" in str(exc_info.value)
    assert repo.has_version("old")
    assert not repo.has_version("new")
    assert not (tmp_path / "versions" / "new").exists()
    assert original.read_text(encoding="utf-8") == "[1]"
    assert (tmp_path / "versions" / "old" / "old.jar").is_file()


# ---------------------------------------------------------------------------
# Read-only repository
# ---------------------------------------------------------------------------


def test_read_only_repository_answers_queries(tmp_path: Path) -> None:
    base = Manifest.parse({"id": "1.12.2", "mainClass": "Main"})
    child = Manifest.parse({"id": "forge", "inheritsFrom": "1.12.2"})
    repo = ReadOnlyVersionRepository([base, child, base], GameDirLayout(tmp_path))
    repo.refresh()

    assert repo.get_version_count() == 2
    assert [w.reason for w in repo.warnings] == ["duplicate version id"]
    assert repo.resolve("forge").main_class == "Main"
    assert repo.get_version_jar("forge") == tmp_path / "versions" / "1.12.2" / "1.12.2.jar"


def test_read_only_repository_refuses_rename(tmp_path: Path) -> None:
    repo = ReadOnlyVersionRepository([Manifest.parse({"id": "a"})], GameDirLayout(tmp_path))
    repo.refresh()

    with pytest.raises(UnsupportedOperationError):
        repo.rename_version("a", "b")

    assert repo.has_version("a")
