"""Platform detection and library rule evaluation.

Rule semantics follow the version manifest format: rules are evaluated in
order, a rule applies when its ``os`` and ``features`` constraints match, an
applying ``disallow`` rejects immediately, and the result is "allowed" only
when at least one ``allow`` rule applied.  A library without rules is always
allowed.
"""

import platform as _host
import re

from pydantic import BaseModel, ConfigDict

from app.models.manifest import Library, OsRule, Rule

# Host system name -> manifest OS name.
_OS_NAMES: dict[str, str] = {
    "Linux": "linux",
    "Windows": "windows",
    "Darwin": "osx",
    "FreeBSD": "freebsd",
}

# Host machine name -> manifest architecture name.
_ARCH_NAMES: dict[str, str] = {
    "i386": "x86",
    "i686": "x86",
    "x86": "x86",
    "x86_64": "x86_64",
    "amd64": "x86_64",
    "arm64": "arm64",
    "aarch64": "arm64",
    "armv7l": "arm32",
    "armv6l": "arm32",
}


class Platform(BaseModel):
    """The OS family, version and architecture that rules are matched against."""

    model_config = ConfigDict(frozen=True)

    os_name:   str
    os_version: str = ""
    arch:      str = "x86_64"
    arch_bits: int = 64

    @classmethod
    def current(cls) -> "Platform":
        """Describe the running host."""
        bits = 32 if _host.architecture()[0] == "32bit" else 64
        return cls(
            os_name=_OS_NAMES.get(_host.system(), _host.system().lower()),
            os_version=_host.version(),
            arch=_ARCH_NAMES.get(_host.machine().lower(), _host.machine().lower()),
            arch_bits=bits,
        )


def _os_matches(rule_os: OsRule, target: Platform) -> bool:
    if rule_os.name is not None and rule_os.name != target.os_name:
        return False
    if rule_os.arch is not None and rule_os.arch != target.arch:
        return False
    if rule_os.version is not None and re.search(rule_os.version, target.os_version) is None:
        return False
    return True


def rules_allow(
    rules: tuple[Rule, ...] | None,
    target: Platform,
    features: dict[str, bool] | None = None,
) -> bool:
    """Return True when *rules* allow *target* (and the enabled *features*)."""
    if not rules:
        return True

    features = features or {}
    allowed = False
    for rule in rules:
        if rule.os is not None and not _os_matches(rule.os, target):
            continue
        if rule.features is not None and any(
            features.get(name) != expected for name, expected in rule.features.items()
        ):
            continue
        if rule.action == "disallow":
            return False
        allowed = True
    return allowed


def native_classifier(library: Library, target: Platform) -> str | None:
    """Classifier of the natives jar *library* provides for *target*.

    Returns ``None`` when the library is not a natives library, has no entry
    for the target OS, or its rules reject the target.  Such libraries are
    simply left out of the natives set.
    """
    if not library.natives or not rules_allow(library.rules, target):
        return None
    classifier = library.natives.get(target.os_name)
    if classifier is None:
        return None
    return classifier.replace("${arch}", str(target.arch_bits))
