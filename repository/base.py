"""VersionRepository — the entry point collaborators use.

A repository owns a catalog snapshot (version id -> raw manifest) and hands
out paths through :class:`~storage.layout.GameDirLayout` and
:class:`~storage.assets.AssetObjectStore`.  Concrete repositories only say
how a catalog is scanned and whether versions can be renamed.

Threading:
  * ``refresh()`` is slow (disk walk) and must run off latency-sensitive
    threads.  Concurrent calls are serialized.
  * A new catalog is published with one reference swap, so readers always
    see either the previous or the new snapshot, never a partial one.
  * Effective manifests are cached per snapshot and dropped on refresh.
"""

import threading
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from app.errors import AssetIndexNotFoundError, VersionNotFoundError
from app.models.manifest import Library, LoggingInfo, Manifest
from app.utils.logging import get_logger
from models.assets import AssetIndex, AssetObject
from models.resolution import EffectiveManifest
from resolvers.inheritance import InheritanceResolver
from resolvers.platform import Platform
from storage.assets import AssetObjectStore
from storage.layout import GameDirLayout


class RepositoryState(str, Enum):
    UNINITIALIZED = "uninitialized"
    SCANNING      = "scanning"
    READY         = "ready"


class ScanWarning(BaseModel):
    """A version directory that was skipped during a scan."""

    model_config = ConfigDict(frozen=True)

    version_id: str
    reason:     str


class Catalog(BaseModel):
    """Immutable result of one scan. Treat ``versions`` as read-only."""

    model_config = ConfigDict(frozen=True)

    versions: dict[str, Manifest] = Field(default_factory=dict)
    warnings: tuple[ScanWarning, ...] = ()


class MissingFile(BaseModel):
    """A file the dependency manager has to fetch before launch."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["jar", "library", "native", "asset_index", "asset_object", "logging"]
    name: str
    path: Path


class VersionRepository(ABC):
    """Query, resolve and locate the versions of one game directory.

    Args:
        layout:   Path conventions of the game directory.
        store:    Asset store; defaults to one over *layout*.
        resolver: Inheritance resolver; defaults to a 64-deep limit.
    """

    def __init__(
        self,
        layout: GameDirLayout,
        store: AssetObjectStore | None = None,
        resolver: InheritanceResolver | None = None,
    ) -> None:
        self.layout = layout
        self.store = store or AssetObjectStore(layout)
        self.resolver = resolver or InheritanceResolver()
        self._catalog = Catalog()
        self._state = RepositoryState.UNINITIALIZED
        self._resolved: dict[str, EffectiveManifest] = {}
        self._refresh_lock = threading.Lock()
        self._cache_lock = threading.Lock()
        self._log = get_logger(f"repository.{type(self).__name__}")

    # ------------------------------------------------------------------
    # Scanning
    # ------------------------------------------------------------------

    @abstractmethod
    def _scan(self) -> Catalog:
        """Build a fresh catalog. Called with the refresh lock held."""

    def refresh(self) -> Catalog:
        """Rescan and atomically publish a new catalog.

        Long running; a second concurrent caller waits for the first scan to
        finish and then performs its own.
        """
        with self._refresh_lock:
            previous = self._state
            self._state = RepositoryState.SCANNING
            try:
                catalog = self._scan()
            except BaseException:
                self._state = previous
                raise
            self._publish(catalog)
            self.store.clear_cache()
            self._state = RepositoryState.READY
        self._log.info(
            "catalog_refreshed",
            versions=len(catalog.versions),
            warnings=len(catalog.warnings),
        )
        return catalog

    def _publish(self, catalog: Catalog) -> None:
        with self._cache_lock:
            self._catalog = catalog
            self._resolved = {}

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def state(self) -> RepositoryState:
        return self._state

    @property
    def catalog(self) -> Catalog:
        return self._catalog

    @property
    def warnings(self) -> tuple[ScanWarning, ...]:
        return self._catalog.warnings

    def has_version(self, version_id: str) -> bool:
        return version_id in self._catalog.versions

    def get_version(self, version_id: str) -> Manifest:
        manifest = self._catalog.versions.get(version_id)
        if manifest is None:
            raise VersionNotFoundError(version_id)
        return manifest

    def get_version_count(self) -> int:
        return len(self._catalog.versions)

    def get_versions(self) -> list[Manifest]:
        """Manifests of the current snapshot, in scan order."""
        return list(self._catalog.versions.values())

    def resolve(self, version_id: str) -> EffectiveManifest:
        """Effective manifest of *version_id*, cached until the next refresh."""
        with self._cache_lock:
            catalog = self._catalog
            cached = self._resolved.get(version_id)
        if cached is not None:
            return cached

        effective = self.resolver.resolve(version_id, catalog.versions)
        with self._cache_lock:
            if self._catalog is catalog:
                self._resolved[version_id] = effective
        return effective

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    @abstractmethod
    def rename_version(self, from_id: str, to_id: str) -> Manifest:
        """Rename a version, returning its manifest under the new id.

        Raises:
            UnsupportedOperationError: The repository is read-only.
            VersionNotFoundError:      *from_id* is not catalogued.
            RepositoryIOError:         The rename failed and was rolled back.
        """

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def get_version_root(self, version_id: str) -> Path:
        return self.layout.version_root(version_id)

    def get_run_directory(self, version_id: str) -> Path:
        return self.layout.run_directory(version_id)

    def get_native_directory(self, version_id: str) -> Path:
        return self.layout.native_directory(version_id)

    def get_library_file(self, library: Library, platform: Platform | None = None) -> Path:
        return self.layout.library_file(library, platform)

    def get_version_jar(self, version: str | EffectiveManifest) -> Path:
        """Jar of *version*, taken from the ancestor it inherits the jar from."""
        effective = self.resolve(version) if isinstance(version, str) else version
        return self.layout.version_jar(effective.jar_id)

    def get_asset_directory(self, version_id: str, asset_id: str) -> Path:
        return self.layout.asset_directory()

    def get_index_file(self, version_id: str, asset_id: str) -> Path:
        return self.layout.index_file(asset_id)

    def get_asset_index(self, version_id: str, asset_id: str) -> AssetIndex:
        return self.store.load_index(asset_id)

    def get_asset_object(self, version_id: str, asset_id: str, obj: str | AssetObject) -> Path:
        """Path of an asset given by index name or by :class:`AssetObject`."""
        if isinstance(obj, AssetObject):
            return self.store.object_path_for(obj)
        return self.store.object_file(asset_id, obj)

    def get_actual_asset_directory(self, version_id: str, asset_id: str) -> Path:
        """Asset directory for launch; may build a legacy mirror (blocking)."""
        return self.store.actual_asset_directory(version_id, asset_id)

    def get_logging_object(self, version_id: str, asset_id: str, logging_info: LoggingInfo) -> Path:
        return self.store.logging_object(asset_id, logging_info)

    # ------------------------------------------------------------------
    # Dependency manager support
    # ------------------------------------------------------------------

    def find_missing(self, version_id: str, platform: Platform | None = None) -> list[MissingFile]:
        """List every file *version_id* needs on *platform* that is absent.

        Only existence is checked; use the asset store to verify content.
        """
        target = platform or Platform.current()
        effective = self.resolve(version_id)
        missing: list[MissingFile] = []

        jar = self.get_version_jar(effective)
        if not jar.is_file():
            missing.append(MissingFile(kind="jar", name=effective.jar_id, path=jar))

        for lib in effective.classpath_libraries(target):
            path = self.layout.library_file(lib)
            if not path.is_file():
                missing.append(MissingFile(kind="library", name=lib.name, path=path))

        for lib, _classifier in effective.native_libraries(target):
            path = self.layout.library_file(lib, target)
            if not path.is_file():
                missing.append(MissingFile(kind="native", name=lib.name, path=path))

        asset_id = effective.actual_asset_index.id
        try:
            index = self.store.load_index(asset_id)
        except AssetIndexNotFoundError as exc:
            missing.append(MissingFile(kind="asset_index", name=asset_id, path=exc.path))
        else:
            for name, obj in sorted(index.objects.items()):
                path = self.store.object_path_for(obj)
                if not path.is_file():
                    missing.append(MissingFile(kind="asset_object", name=name, path=path))

        for info in (effective.logging or {}).values():
            path = self.store.logging_object(asset_id, info)
            if not path.is_file():
                missing.append(MissingFile(kind="logging", name=info.file.id, path=path))

        return missing
