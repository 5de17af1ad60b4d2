"""AssetObjectStore — content-addressed asset payloads and their indexes.

Objects live once per hash under ``assets/objects``; an asset index maps
logical names to ``(hash, size)``.  Older game versions read assets by name,
so for ``virtual`` and ``map_to_resources`` indexes the store builds a
name-addressed mirror from the hash-addressed objects.

The store never downloads and never repairs.  Absent things raise a
:class:`~app.errors.NotFoundError` subclass (fetchable), mismatching things
raise :class:`~app.errors.CorruptionError`.

Mirror policy: a mirror counts as complete when every index name exists
with the recorded size.  Content hashes are only re-checked in strict mode,
since hashing every asset on every launch is too slow.
"""

import hashlib
import json
import os
import shutil
import threading
import uuid
from pathlib import Path, PurePosixPath

from pydantic import BaseModel, Field, ValidationError

from app.errors import (
    AssetIndexNotFoundError,
    AssetNotFoundError,
    CorruptionError,
    ObjectMissingError,
    ParseError,
    RepositoryIOError,
)
from app.models.manifest import LoggingInfo
from app.utils.logging import get_logger
from models.assets import AssetIndex, AssetObject
from storage.layout import GameDirLayout

_CHUNK_SIZE = 64 * 1024


def sha1_of(path: Path) -> str:
    """Stream *path* through SHA-1 and return the hex digest."""
    digest = hashlib.sha1()
    with path.open("rb") as fp:
        for chunk in iter(lambda: fp.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


class AssetReport(BaseModel):
    """Outcome of checking every object of one asset index."""

    asset_id:  str
    total:     int = 0
    missing:   list[str] = Field(default_factory=list)
    corrupted: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.missing and not self.corrupted


class AssetObjectStore:
    """Read asset indexes, locate and verify objects, build legacy mirrors.

    Args:
        layout: Path conventions of the game directory.
        strict: Re-hash mirror entries when checking whether a mirror is
            complete (default: existence + size only).
    """

    def __init__(self, layout: GameDirLayout, strict: bool = False) -> None:
        self.layout = layout
        self.strict = strict
        self._indexes: dict[str, AssetIndex] = {}
        self._lock = threading.Lock()
        self._log = get_logger("storage.assets")

    # ------------------------------------------------------------------
    # Indexes
    # ------------------------------------------------------------------

    def load_index(self, asset_id: str) -> AssetIndex:
        """Return the parsed index for *asset_id*, cached after the first read.

        Raises:
            AssetIndexNotFoundError: The index file does not exist.
            ParseError:              The index file is malformed.
            RepositoryIOError:       The index file cannot be read.
        """
        with self._lock:
            cached = self._indexes.get(asset_id)
        if cached is not None:
            return cached

        path = self.layout.index_file(asset_id)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise AssetIndexNotFoundError(asset_id, path) from exc
        except UnicodeDecodeError as exc:
            raise ParseError(f"ERROR: asset index {path} is not valid UTF-8: {exc}") from exc
        except OSError as exc:
            raise RepositoryIOError(f"ERROR: cannot read asset index {path}: {exc}") from exc

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ParseError(f"ERROR: malformed JSON in asset index {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ParseError(f"ERROR: asset index {path} must be a JSON object")
        try:
            index = AssetIndex.model_validate(data)
        except ValidationError as exc:
            first = exc.errors()[0]
            where = "/".join(str(p) for p in first["loc"]) or "root"
            raise ParseError(
                f"ERROR: invalid asset index {path} at {where}: {first['msg']}"
            ) from exc

        with self._lock:
            return self._indexes.setdefault(asset_id, index)

    def clear_cache(self) -> None:
        """Forget every loaded index so the next access re-reads the file."""
        with self._lock:
            self._indexes.clear()

    # ------------------------------------------------------------------
    # Objects
    # ------------------------------------------------------------------

    def object_path_for(self, obj: AssetObject) -> Path:
        return self.layout.object_path(obj.hash)

    def object_file(self, asset_id: str, name: str, verify: bool = False) -> Path:
        """Hash-addressed path backing the asset *name* of index *asset_id*.

        Content is only checked when *verify* is True.

        Raises:
            AssetNotFoundError: *name* is not listed in the index.
            ObjectMissingError: (verify only) the object file is absent.
            CorruptionError:    (verify only) size or hash differ.
        """
        obj = self.load_index(asset_id).objects.get(name)
        if obj is None:
            raise AssetNotFoundError(asset_id, name)
        if verify:
            return self.check(obj)
        return self.object_path_for(obj)

    def check(self, obj: AssetObject) -> Path:
        """Return the object's path after confirming its size and hash.

        Raises:
            ObjectMissingError: The object file is absent.
            CorruptionError:    The file's size or SHA-1 differ from *obj*.
        """
        path = self.object_path_for(obj)
        try:
            size = path.stat().st_size
        except FileNotFoundError as exc:
            raise ObjectMissingError(obj.hash, path) from exc
        if size != obj.size:
            raise CorruptionError(path, f"{obj.size} bytes", f"{size} bytes")
        actual = sha1_of(path)
        if actual != obj.hash:
            raise CorruptionError(path, obj.hash, actual)
        return path

    def verify(self, obj: AssetObject) -> bool:
        """True iff the object file exists with the recorded size and hash."""
        try:
            self.check(obj)
        except (ObjectMissingError, CorruptionError):
            return False
        return True

    def verify_index(self, asset_id: str) -> AssetReport:
        """Check every object of *asset_id*; report absent and corrupted names."""
        index = self.load_index(asset_id)
        report = AssetReport(asset_id=asset_id, total=len(index.objects))
        for name, obj in sorted(index.objects.items()):
            try:
                self.check(obj)
            except ObjectMissingError:
                report.missing.append(name)
            except CorruptionError as exc:
                report.corrupted.append(name)
                self._log.warning("asset_corrupted", asset_id=asset_id, name=name, error=str(exc))
        return report

    def logging_object(self, asset_id: str, logging_info: LoggingInfo) -> Path:
        """Path of the logging configuration file referenced by *logging_info*."""
        path = self.layout.logging_file(logging_info)
        self._log.debug("logging_object", asset_id=asset_id, path=str(path))
        return path

    # ------------------------------------------------------------------
    # Name-addressed mirrors
    # ------------------------------------------------------------------

    def actual_asset_directory(
        self,
        version_id: str,
        asset_id: str,
        strict: bool | None = None,
    ) -> Path:
        """Directory the game of *version_id* should read its assets from.

        Modern indexes use ``assets/`` as is.  ``virtual`` indexes get a
        mirror under ``assets/virtual/<asset_id>``; ``map_to_resources``
        indexes get one under the version's ``resources`` run directory.
        Mirrors are (re)built only when incomplete.

        Raises:
            AssetIndexNotFoundError / ParseError: see :meth:`load_index`.
            ObjectMissingError: A mirrored entry's object is absent.
            RepositoryIOError:  Creating a mirror entry failed.
        """
        index = self.load_index(asset_id)
        if index.virtual:
            target = self.layout.virtual_directory(asset_id)
        elif index.map_to_resources:
            target = self.layout.resources_directory(version_id)
        else:
            return self.layout.asset_directory()

        try:
            target.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise RepositoryIOError(f"ERROR: cannot create asset mirror {target}: {exc}") from exc

        strict = self.strict if strict is None else strict
        if self._mirror_complete(index, target, strict):
            return target

        created = self._reconstruct(index, target, strict)
        self._log.info(
            "assets_reconstructed",
            version_id=version_id,
            asset_id=asset_id,
            target=str(target),
            created=created,
            total=len(index.objects),
        )
        return target

    def _entry_path(self, target: Path, name: str) -> Path:
        rel = PurePosixPath(name)
        if rel.is_absolute() or ".." in rel.parts or not rel.parts:
            raise ParseError(f"ERROR: asset name escapes the mirror directory: {name!r}")
        return target.joinpath(*rel.parts)

    def _entry_ok(self, dst: Path, obj: AssetObject, strict: bool) -> bool:
        try:
            if dst.stat().st_size != obj.size:
                return False
        except OSError:
            return False
        return not strict or sha1_of(dst) == obj.hash

    def _mirror_complete(self, index: AssetIndex, target: Path, strict: bool) -> bool:
        return all(
            self._entry_ok(self._entry_path(target, name), obj, strict)
            for name, obj in index.objects.items()
        )

    def _reconstruct(self, index: AssetIndex, target: Path, strict: bool) -> int:
        """Create each missing or stale entry atomically; return how many."""
        created = 0
        for name, obj in sorted(index.objects.items()):
            dst = self._entry_path(target, name)
            if self._entry_ok(dst, obj, strict):
                continue
            src = self.object_path_for(obj)
            if not src.is_file():
                raise ObjectMissingError(obj.hash, src)
            try:
                self._place(src, dst)
            except OSError as exc:
                raise RepositoryIOError(
                    f"ERROR: cannot create asset mirror entry {dst}: {exc}"
                ) from exc
            created += 1
        return created

    @staticmethod
    def _place(src: Path, dst: Path) -> None:
        # Link or copy into a private temp name, then rename over dst, so a
        # concurrent reader only ever sees a complete file.
        dst.parent.mkdir(parents=True, exist_ok=True)
        tmp = dst.with_name(f".{dst.name}.{uuid.uuid4().hex}.tmp")
        try:
            try:
                os.link(src, tmp)
            except OSError:
                shutil.copyfile(src, tmp)
            os.replace(tmp, dst)
        finally:
            if tmp.exists():
                tmp.unlink()
