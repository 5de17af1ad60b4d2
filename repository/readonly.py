"""Read-only repository over a fixed set of manifests.

Used for version sources that are not a local directory (a remote listing,
an in-memory fixture).  It answers every query a local repository does, but
mutation always fails with :class:`~app.errors.UnsupportedOperationError`.
"""

from collections.abc import Iterable

from app.errors import UnsupportedOperationError
from app.models.manifest import Manifest
from repository.base import Catalog, ScanWarning, VersionRepository
from resolvers.inheritance import InheritanceResolver
from storage.assets import AssetObjectStore
from storage.layout import GameDirLayout


class ReadOnlyVersionRepository(VersionRepository):
    """Repository whose catalog comes from *manifests*.

    Args:
        manifests: Versions to expose; later duplicates of an id are skipped
            with a scan warning.
        layout:    Where the versions would live locally.
    """

    def __init__(
        self,
        manifests: Iterable[Manifest],
        layout: GameDirLayout,
        store: AssetObjectStore | None = None,
        resolver: InheritanceResolver | None = None,
    ) -> None:
        super().__init__(layout, store, resolver)
        self._source = tuple(manifests)

    def _scan(self) -> Catalog:
        versions: dict[str, Manifest] = {}
        warnings: list[ScanWarning] = []
        for manifest in self._source:
            if manifest.id in versions:
                warnings.append(ScanWarning(version_id=manifest.id, reason="duplicate version id"))
                continue
            versions[manifest.id] = manifest
        return Catalog(versions=versions, warnings=tuple(warnings))

    def rename_version(self, from_id: str, to_id: str) -> Manifest:
        raise UnsupportedOperationError(
            f"ERROR: {type(self).__name__} is read-only; cannot rename {from_id} to {to_id}"
        )
