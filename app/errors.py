"""Error taxonomy for the game directory core.

Callers distinguish three families:

* :class:`NotFoundError`: something is absent and can be fetched
  (the dependency manager's cue);
* :class:`CorruptionError`: something is present but does not match its
  recorded hash/size;
* everything else: malformed documents, broken inheritance chains,
  filesystem failures and unsupported operations.

Nothing in this package retries or repairs; errors always reach the caller.
"""


class GameDirError(Exception):
    """Base class for every error raised by this package."""


class ParseError(GameDirError, ValueError):
    """A manifest or asset index document is malformed."""


class NotFoundError(GameDirError, LookupError):
    """An id, name or file is absent. Always recoverable by the caller."""


class VersionNotFoundError(NotFoundError):
    def __init__(self, version_id: str) -> None:
        super().__init__(f"ERROR: version not found: {version_id}")
        self.version_id = version_id


class AssetIndexNotFoundError(NotFoundError):
    def __init__(self, asset_id: str, path: object) -> None:
        super().__init__(f"ERROR: asset index {asset_id} not found at {path}")
        self.asset_id = asset_id
        self.path = path


class AssetNotFoundError(NotFoundError):
    def __init__(self, asset_id: str, name: str) -> None:
        super().__init__(f"ERROR: asset {name!r} is not listed in index {asset_id}")
        self.asset_id = asset_id
        self.name = name


class ObjectMissingError(NotFoundError):
    def __init__(self, object_hash: str, path: object) -> None:
        super().__init__(f"ERROR: asset object {object_hash} missing at {path}")
        self.hash = object_hash
        self.path = path


class ResolutionError(GameDirError):
    """Inheritance resolution failed. Never partially resolved."""


class CyclicInheritanceError(ResolutionError):
    def __init__(self, chain: list[str]) -> None:
        super().__init__(
            "ERROR: cyclic inheritance: " + " -> ".join(chain)
        )
        self.chain = chain


class MissingAncestorError(ResolutionError):
    def __init__(self, version_id: str, parent_id: str) -> None:
        super().__init__(
            f"ERROR: version {version_id} inherits from missing version {parent_id}"
        )
        self.version_id = version_id
        self.parent_id = parent_id


class ChainTooDeepError(ResolutionError):
    def __init__(self, version_id: str, max_depth: int) -> None:
        super().__init__(
            f"ERROR: inheritance chain of {version_id} exceeds {max_depth} versions"
        )
        self.version_id = version_id
        self.max_depth = max_depth


class RepositoryIOError(GameDirError, OSError):
    """A filesystem operation failed; the repository state is unchanged."""


class CorruptionError(GameDirError):
    def __init__(self, path: object, expected: str, actual: str) -> None:
        super().__init__(
            f"ERROR: corrupted file {path}: expected {expected}, got {actual}"
        )
        self.path = path
        self.expected = expected
        self.actual = actual


class UnsupportedOperationError(GameDirError):
    """The repository implementation does not support this operation."""
