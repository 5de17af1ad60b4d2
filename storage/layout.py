"""GameDirLayout — every directory-naming convention of a game directory.

All methods are pure path arithmetic: nothing here touches the filesystem,
and nothing here knows about inheritance (callers substitute the jar-owning
version id before asking for a jar).

Layout::

    <root>/versions/<id>/<id>.json
    <root>/versions/<id>/<id>.jar
    <root>/versions/<id>/<id>-natives/
    <root>/libraries/<group as dirs>/<artifact>/<version>/<artifact>-<version>[-<classifier>].jar
    <root>/assets/indexes/<asset id>.json
    <root>/assets/objects/<hash[0:2]>/<hash>
    <root>/assets/virtual/<asset id>/<name>
    <root>/assets/log_configs/<file id>
"""

from pathlib import Path

from app.models.manifest import Library, LoggingInfo
from resolvers.platform import Platform, native_classifier


class GameDirLayout:
    """Map version ids, libraries and assets to paths under *root*.

    Args:
        root:     Game directory root.
        isolated: When True each version runs inside its own version root
            instead of the shared game directory.
    """

    def __init__(self, root: str | Path, isolated: bool = False) -> None:
        self.root = Path(root)
        self.isolated = isolated

    # ------------------------------------------------------------------
    # Versions
    # ------------------------------------------------------------------

    @property
    def versions_directory(self) -> Path:
        return self.root / "versions"

    def version_root(self, version_id: str) -> Path:
        return self.versions_directory / version_id

    def version_json(self, version_id: str) -> Path:
        return self.version_root(version_id) / f"{version_id}.json"

    def version_jar(self, version_id: str) -> Path:
        return self.version_root(version_id) / f"{version_id}.jar"

    def run_directory(self, version_id: str) -> Path:
        """Working directory of a launched version."""
        return self.version_root(version_id) if self.isolated else self.root

    def native_directory(self, version_id: str) -> Path:
        """Where natives are extracted. Stable across calls, never temporary."""
        return self.version_root(version_id) / f"{version_id}-natives"

    def resources_directory(self, version_id: str) -> Path:
        return self.run_directory(version_id) / "resources"

    # ------------------------------------------------------------------
    # Libraries
    # ------------------------------------------------------------------

    @property
    def libraries_directory(self) -> Path:
        return self.root / "libraries"

    def library_file(self, library: Library, platform: Platform | None = None) -> Path:
        """Jar path of *library*.

        An explicit classifier in the coordinate wins; otherwise, for natives
        libraries and a given *platform*, the platform's native classifier is
        used.
        """
        classifier = library.classifier
        if classifier is None and platform is not None:
            classifier = native_classifier(library, platform)

        filename = f"{library.artifact}-{library.version}"
        if classifier:
            filename += f"-{classifier}"
        return (
            self.libraries_directory.joinpath(*library.group.split("."))
            / library.artifact
            / library.version
            / f"{filename}.jar"
        )

    # ------------------------------------------------------------------
    # Assets
    # ------------------------------------------------------------------

    def asset_directory(self) -> Path:
        return self.root / "assets"

    def index_file(self, asset_id: str) -> Path:
        return self.asset_directory() / "indexes" / f"{asset_id}.json"

    def object_path(self, object_hash: str) -> Path:
        return self.asset_directory() / "objects" / object_hash[:2] / object_hash

    def virtual_directory(self, asset_id: str) -> Path:
        return self.asset_directory() / "virtual" / asset_id

    def logging_file(self, logging_info: LoggingInfo) -> Path:
        return self.asset_directory() / "log_configs" / logging_info.file.id
