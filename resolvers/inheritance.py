"""InheritanceResolver — merges a version with its ``inheritsFrom`` chain.

The catalog is a plain mapping of version id to raw manifest; parents are
looked up by id, so a broken or cyclic chain is detected here instead of
ever existing as an object graph.

Merge policy (child overrides parent):
  * scalar fields take the nearest non-null value walking leaf -> root;
  * ``jar`` is the nearest declared jar, else the root ancestor's id;
  * ``libraries`` are concatenated leaf first, and an ancestor library whose
    coordinate already appeared closer to the leaf is dropped;
  * ``arguments`` are concatenated root first.

The whole chain is collected before anything is merged, so a failing
resolution never yields a partial result.
"""

from collections.abc import Mapping

from app.config import DEFAULT_MAX_INHERITANCE_DEPTH
from app.errors import (
    ChainTooDeepError,
    CyclicInheritanceError,
    MissingAncestorError,
    VersionNotFoundError,
)
from app.models.manifest import Arguments, Library, Manifest
from app.utils.logging import get_logger
from models.resolution import EffectiveManifest

# Fields that take the nearest non-null definition.
_SCALAR_FIELDS: tuple[str, ...] = (
    "asset_index",
    "assets",
    "logging",
    "main_class",
    "minecraft_arguments",
    "type",
    "release_time",
    "time",
    "minimum_launcher_version",
)


class InheritanceResolver:
    """Resolve manifests against a catalog.

    Usage::

        resolver = InheritanceResolver()
        effective = resolver.resolve("1.12.2-forge", catalog)

    Args:
        max_depth: Longest accepted chain, counting the leaf itself.
    """

    def __init__(self, max_depth: int = DEFAULT_MAX_INHERITANCE_DEPTH) -> None:
        self.max_depth = max_depth
        self._log = get_logger("resolvers.inheritance")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def resolve(self, version_id: str, catalog: Mapping[str, Manifest]) -> EffectiveManifest:
        """Return the effective manifest of *version_id*.

        Raises:
            VersionNotFoundError:   *version_id* is not in *catalog*.
            MissingAncestorError:   a parent id is not in *catalog*.
            CyclicInheritanceError: the chain revisits a version.
            ChainTooDeepError:      the chain is longer than ``max_depth``.
        """
        chain = self.chain(version_id, catalog)
        if len(chain) == 1:
            return EffectiveManifest.model_validate(chain[0].model_dump())
        effective = self._merge(chain)
        self._log.debug(
            "version_resolved",
            version_id=version_id,
            chain=[m.id for m in chain],
            libraries=len(effective.libraries),
        )
        return effective

    def chain(self, version_id: str, catalog: Mapping[str, Manifest]) -> list[Manifest]:
        """Return the manifests from *version_id* up to its root, leaf first."""
        manifest = catalog.get(version_id)
        if manifest is None:
            raise VersionNotFoundError(version_id)

        chain: list[Manifest] = [manifest]
        visited: set[str] = {manifest.id}
        while manifest.parent_id is not None:
            parent_id = manifest.parent_id
            if parent_id in visited:
                raise CyclicInheritanceError([m.id for m in chain] + [parent_id])
            if len(chain) >= self.max_depth:
                raise ChainTooDeepError(version_id, self.max_depth)
            parent = catalog.get(parent_id)
            if parent is None:
                raise MissingAncestorError(manifest.id, parent_id)
            chain.append(parent)
            visited.add(parent_id)
            manifest = parent
        return chain

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _merge(self, chain: list[Manifest]) -> EffectiveManifest:
        leaf = chain[0]
        fields: dict = {"id": leaf.id}

        for name in _SCALAR_FIELDS:
            fields[name] = next(
                (getattr(m, name) for m in chain if getattr(m, name) is not None),
                None,
            )

        fields["jar"] = next((m.jar for m in chain if m.jar is not None), chain[-1].id)
        fields["libraries"] = _merge_libraries(chain)
        fields["arguments"] = _merge_arguments(chain)

        return EffectiveManifest(**fields)


def _merge_libraries(chain: list[Manifest]) -> tuple[Library, ...]:
    """Leaf-first concatenation; ancestors cannot re-add a nearer coordinate."""
    merged: list[Library] = []
    seen: set[tuple] = set()
    for manifest in chain:
        own = {lib.coordinate for lib in manifest.libraries}
        merged.extend(lib for lib in manifest.libraries if lib.coordinate not in seen)
        seen |= own
    return tuple(merged)


def _merge_arguments(chain: list[Manifest]) -> Arguments | None:
    declared = [m.arguments for m in reversed(chain) if m.arguments is not None]
    if not declared:
        return None
    return Arguments(
        game=tuple(arg for a in declared for arg in a.game),
        jvm=tuple(arg for a in declared for arg in a.jvm),
    )
