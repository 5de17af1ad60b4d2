"""Effective (inheritance-resolved) manifests.

An :class:`EffectiveManifest` is what the launch collaborator consumes: a
:class:`~app.models.manifest.Manifest` with every ancestor merged in, so it
never carries a ``parent_id``.  It is never written to disk.
"""

from pydantic import model_validator

from app.models.manifest import Library, Manifest
from resolvers.platform import Platform, native_classifier, rules_allow


class EffectiveManifest(Manifest):
    """Self-contained, launch-ready manifest."""

    @model_validator(mode="after")
    def _no_parent(self) -> "EffectiveManifest":
        if self.parent_id is not None:
            raise ValueError(
                f"ERROR: effective manifest {self.id} still inherits from {self.parent_id}"
            )
        return self

    @property
    def jar_id(self) -> str:
        """Id of the version whose jar this version runs."""
        return self.jar or self.id

    def classpath_libraries(self, target: Platform) -> list[Library]:
        """Non-native libraries whose rules allow *target*, in manifest order."""
        return [
            lib
            for lib in self.libraries
            if not lib.is_native and rules_allow(lib.rules, target)
        ]

    def native_libraries(self, target: Platform) -> list[tuple[Library, str]]:
        """Natives libraries for *target* paired with their resolved classifier."""
        natives: list[tuple[Library, str]] = []
        for lib in self.libraries:
            classifier = native_classifier(lib, target)
            if classifier is not None:
                natives.append((lib, classifier))
        return natives
