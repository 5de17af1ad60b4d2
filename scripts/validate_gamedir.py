#!/usr/bin/env python3
"""Validate every manifest and asset index of a game directory.

Checks each ``versions/<id>/<id>.json`` against VersionManifest.v1.json and
each ``assets/indexes/<id>.json`` against AssetIndex.v1.json, then resolves
every version's inheritance chain.

Usage:
    python scripts/validate_gamedir.py [--root DIR]

Exit codes:
    0  — all documents valid and every version resolves
    1  — at least one document is invalid or a version fails to resolve
    2  — the game directory does not exist
"""

import argparse
import json
import sys
from pathlib import Path

import jsonschema

# Ensure project root is on sys.path so app/*, repository/* etc. are importable
# when the script is invoked from any working directory.
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from app.config import GameDirSettings  # noqa: E402
from app.errors import GameDirError  # noqa: E402
from app.utils.logging import configure_logging  # noqa: E402
from repository.local import LocalVersionRepository  # noqa: E402

# ---------------------------------------------------------------------------
# Contract schemas, loaded once at import time relative to project root.
# ---------------------------------------------------------------------------
_CONTRACTS_DIR = Path(__file__).resolve().parent.parent / "contracts" / "schemas"
_SCHEMA_VERSION = json.loads((_CONTRACTS_DIR / "VersionManifest.v1.json").read_text(encoding="utf-8"))
_SCHEMA_INDEX   = json.loads((_CONTRACTS_DIR / "AssetIndex.v1.json").read_text(encoding="utf-8"))


def _check(path: Path, schema: dict) -> str | None:
    """Return an error message for *path*, or None when it conforms."""
    try:
        document = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        return f"ERROR: failed to load {path}: {exc}"
    try:
        jsonschema.validate(instance=document, schema=schema)
    except jsonschema.ValidationError as exc:
        where = "/".join(str(p) for p in exc.absolute_path) or "root"
        return f"ERROR: {path} does not conform to {schema['title']} at {where}: {exc.message}"
    return None


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--root", metavar="DIR", default=None,
                        help="Game directory (default: $GAME_DIR or platform default)")
    parser.add_argument("--log-level", default="WARNING", metavar="LEVEL")
    args = parser.parse_args()
    configure_logging(args.log_level)

    settings = GameDirSettings.load(args.root)
    if not settings.root.is_dir():
        print(f"ERROR: game directory not found: {settings.root}", file=sys.stderr)
        sys.exit(2)

    errors: list[str] = []
    checked = 0

    # 1. Version manifests
    versions_dir = settings.root / "versions"
    if versions_dir.is_dir():
        for version_dir in sorted(p for p in versions_dir.iterdir() if p.is_dir()):
            manifest_path = version_dir / f"{version_dir.name}.json"
            if not manifest_path.is_file():
                errors.append(f"ERROR: manifest missing: {manifest_path}")
                continue
            checked += 1
            error = _check(manifest_path, _SCHEMA_VERSION)
            if error:
                errors.append(error)

    # 2. Asset indexes
    indexes_dir = settings.root / "assets" / "indexes"
    if indexes_dir.is_dir():
        for index_path in sorted(indexes_dir.glob("*.json")):
            checked += 1
            error = _check(index_path, _SCHEMA_INDEX)
            if error:
                errors.append(error)

    # 3. Inheritance chains
    repo = LocalVersionRepository.from_settings(settings)
    repo.refresh()
    for manifest in repo.get_versions():
        try:
            repo.resolve(manifest.id)
        except GameDirError as exc:
            errors.append(str(exc))

    for error in errors:
        print(error, file=sys.stderr)
    if errors:
        sys.exit(1)

    print(f"OK: {checked} documents; {repo.get_version_count()} versions resolved")


if __name__ == "__main__":
    main()
