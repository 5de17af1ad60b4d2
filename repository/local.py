"""LocalVersionRepository — versions stored under ``<root>/versions``.

Each subdirectory of ``versions/`` is one version; its manifest is
``versions/<id>/<id>.json``.  A subdirectory whose manifest is missing or
malformed is skipped with a :class:`~repository.base.ScanWarning`, never
failing the scan as a whole.

Usage::

    repo = LocalVersionRepository.from_settings(GameDirSettings.load())
    repo.refresh()
    jar = repo.get_version_jar("1.12.2-forge")
"""

import json
import os
from pathlib import Path
from typing import Any

from app.config import GameDirSettings
from app.errors import ParseError, RepositoryIOError
from app.models.manifest import Manifest
from repository.base import Catalog, ScanWarning, VersionRepository
from resolvers.inheritance import InheritanceResolver
from storage.assets import AssetObjectStore
from storage.layout import GameDirLayout

# Characters a version id cannot contain, since it doubles as a directory name.
_FORBIDDEN_ID_CHARS = frozenset('/\\:*?"<>|\x00')


def _valid_version_id(version_id: str) -> bool:
    return (
        bool(version_id.strip())
        and version_id not in (".", "..")
        and not _FORBIDDEN_ID_CHARS.intersection(version_id)
    )


def _write_document(path: Path, document: dict[str, Any]) -> None:
    """Replace *path* with *document* as indented JSON, atomically."""
    tmp = path.with_name(f".{path.name}.tmp")
    try:
        tmp.write_text(json.dumps(document, indent=2), encoding="utf-8")
        os.replace(tmp, path)
    finally:
        if tmp.exists():
            tmp.unlink()


class LocalVersionRepository(VersionRepository):
    """Mutable, disk-backed repository."""

    @classmethod
    def from_settings(cls, settings: GameDirSettings) -> "LocalVersionRepository":
        layout = GameDirLayout(settings.root, isolated=settings.isolated)
        return cls(
            layout,
            store=AssetObjectStore(layout, strict=settings.strict_assets),
            resolver=InheritanceResolver(max_depth=settings.max_inheritance_depth),
        )

    # ------------------------------------------------------------------
    # Scanning
    # ------------------------------------------------------------------

    def _scan(self) -> Catalog:
        versions_dir = self.layout.versions_directory
        if not versions_dir.is_dir():
            self._log.info("versions_directory_absent", path=str(versions_dir))
            return Catalog()

        try:
            entries = sorted(p for p in versions_dir.iterdir() if p.is_dir())
        except OSError as exc:
            raise RepositoryIOError(f"ERROR: cannot list {versions_dir}: {exc}") from exc

        versions: dict[str, Manifest] = {}
        warnings: list[ScanWarning] = []
        for entry in entries:
            version_id = entry.name
            try:
                manifest = self._load(version_id)
            except (ParseError, OSError) as exc:
                warnings.append(ScanWarning(version_id=version_id, reason=str(exc)))
                self._log.warning("version_skipped", version_id=version_id, reason=str(exc))
                continue
            versions[version_id] = manifest

        return Catalog(versions=versions, warnings=tuple(warnings))

    def _load(self, version_id: str) -> Manifest:
        path = self.layout.version_json(version_id)
        if not path.is_file():
            raise ParseError(f"ERROR: manifest missing: {path}")
        manifest = Manifest.parse_file(path)
        if manifest.id != version_id:
            # The directory name is authoritative.
            self._log.warning(
                "version_id_mismatch",
                version_id=version_id,
                declared_id=manifest.id,
            )
            manifest = manifest.model_copy(update={"id": version_id})
        return manifest

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def rename_version(self, from_id: str, to_id: str) -> Manifest:
        """Move ``versions/<from_id>`` to ``versions/<to_id>``.

        Renames the directory, the manifest and the jar, then rewrites the
        manifest's ``id``; every other key of the document is kept as is.
        On any failure the completed steps are undone before
        :class:`RepositoryIOError` is raised.  The catalog is only updated
        after the whole rename succeeded.
        """
        if not _valid_version_id(to_id):
            raise ValueError(f"ERROR: invalid version id {to_id!r}")

        with self._refresh_lock:
            manifest = self.get_version(from_id)
            if from_id == to_id:
                return manifest

            from_dir = self.layout.version_root(from_id)
            to_dir = self.layout.version_root(to_id)
            if to_dir.exists():
                raise RepositoryIOError(f"ERROR: cannot rename {from_id}: {to_dir} already exists")

            done: list[tuple[Path, Path]] = []
            try:
                self._move(from_dir, to_dir, done)
                json_path = self.layout.version_json(to_id)
                self._move(to_dir / f"{from_id}.json", json_path, done)
                old_jar = to_dir / f"{from_id}.jar"
                if old_jar.exists():
                    self._move(old_jar, self.layout.version_jar(to_id), done)

                document = json.loads(json_path.read_text(encoding="utf-8"))
                if not isinstance(document, dict):
                    raise ParseError(f"ERROR: manifest {json_path} is not a JSON object")
                document["id"] = to_id
                _write_document(json_path, document)
            except (OSError, ValueError) as exc:
                self._rollback(done)
                raise RepositoryIOError(
                    f"ERROR: cannot rename version {from_id} to {to_id}: {exc}"
                ) from exc

            renamed = manifest.model_copy(update={"id": to_id})
            versions = {
                (to_id if vid == from_id else vid): (renamed if vid == from_id else m)
                for vid, m in self._catalog.versions.items()
            }
            self._publish(Catalog(versions=versions, warnings=self._catalog.warnings))

        self._log.info("version_renamed", from_id=from_id, to_id=to_id)
        return renamed

    @staticmethod
    def _move(src: Path, dst: Path, done: list[tuple[Path, Path]]) -> None:
        src.rename(dst)
        done.append((src, dst))

    def _rollback(self, done: list[tuple[Path, Path]]) -> None:
        for src, dst in reversed(done):
            try:
                dst.rename(src)
            except OSError as exc:
                self._log.error("rename_rollback_failed", src=str(src), dst=str(dst), error=str(exc))
                raise RepositoryIOError(
                    f"ERROR: rollback failed, {dst} could not be moved back to {src}: {exc}"
                ) from exc
