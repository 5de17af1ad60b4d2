#!/usr/bin/env python3
"""gamedir — CLI for inspecting and organising a local game directory.

Usage:
    gamedir list          [--root DIR]
    gamedir resolve       <version> [--root DIR]
    gamedir libraries     <version> [--root DIR] [--os NAME] [--arch ARCH]
    gamedir missing       <version> [--root DIR] [--os NAME] [--arch ARCH]
    gamedir assets        <version> [--root DIR] [--strict-assets]
    gamedir verify-assets <asset id> [--root DIR]
    gamedir rename        <from> <to> [--root DIR]
    gamedir validate      [--root DIR]

The game directory defaults to the GAME_DIR environment variable, then to the
platform's conventional location.

Exit codes:
    0  — success
    1  — error (malformed document, broken inheritance, corruption, I/O)
    2  — invalid usage, or a version / index / object not found
"""

import argparse
import json
import subprocess
import sys
from pathlib import Path

# Ensure project root is on sys.path so app/*, repository/* etc. are importable
# when the script is invoked from any working directory.
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from app.config import GameDirSettings  # noqa: E402
from app.errors import GameDirError, NotFoundError  # noqa: E402
from app.utils.logging import configure_logging  # noqa: E402
from repository.local import LocalVersionRepository  # noqa: E402
from resolvers.platform import Platform  # noqa: E402

_VALIDATE_SCRIPT = Path(__file__).resolve().parent / "validate_gamedir.py"

_USAGE = """\
Usage:
  gamedir list          [--root DIR]
  gamedir resolve       <version> [--root DIR]
  gamedir libraries     <version> [--root DIR] [--os NAME] [--arch ARCH]
  gamedir missing       <version> [--root DIR] [--os NAME] [--arch ARCH]
  gamedir assets        <version> [--root DIR] [--strict-assets]
  gamedir verify-assets <asset id> [--root DIR]
  gamedir rename        <from> <to> [--root DIR]
  gamedir validate      [--root DIR]
"""


# ---------------------------------------------------------------------------
# helpers
# ---------------------------------------------------------------------------

def _parser(prog: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=f"gamedir {prog}", add_help=True)
    parser.add_argument("--root", metavar="DIR", default=None,
                        help="Game directory (default: $GAME_DIR or platform default)")
    parser.add_argument("--isolated", action="store_true",
                        help="Each version runs inside its own version directory")
    parser.add_argument("--strict-assets", action="store_true",
                        help="Re-hash mirrored assets instead of checking sizes only")
    parser.add_argument("--log-level", default="WARNING", metavar="LEVEL")
    return parser


def _parse(parser: argparse.ArgumentParser, argv: list[str]) -> argparse.Namespace | int:
    try:
        args = parser.parse_args(argv)
    except SystemExit as exc:
        return int(exc.code) if exc.code is not None else 2
    configure_logging(args.log_level)
    return args


def _repository(args: argparse.Namespace) -> LocalVersionRepository:
    settings = GameDirSettings.load(
        args.root,
        isolated=args.isolated,
        strict_assets=args.strict_assets,
    )
    repo = LocalVersionRepository.from_settings(settings)
    repo.refresh()
    return repo


def _platform(args: argparse.Namespace) -> Platform:
    host = Platform.current()
    return host.model_copy(update={
        "os_name": args.os or host.os_name,
        "arch": args.arch or host.arch,
    })


def _fail(exc: GameDirError) -> int:
    print(str(exc), file=sys.stderr)
    return 2 if isinstance(exc, NotFoundError) else 1


# ---------------------------------------------------------------------------
# commands
# ---------------------------------------------------------------------------

def cmd_list(argv: list[str]) -> int:
    args = _parse(_parser("list"), argv)
    if isinstance(args, int):
        return args

    try:
        repo = _repository(args)
    except GameDirError as exc:
        return _fail(exc)

    for manifest in repo.get_versions():
        parent = manifest.parent_id or "-"
        print(f"{manifest.id}\t{manifest.type or '-'}\t{parent}")
    for warning in repo.warnings:
        print(f"WARNING: skipped {warning.version_id}: {warning.reason}", file=sys.stderr)
    print(f"OK: {repo.get_version_count()} versions; {len(repo.warnings)} skipped")
    return 0


def cmd_resolve(argv: list[str]) -> int:
    parser = _parser("resolve")
    parser.add_argument("version")
    args = _parse(parser, argv)
    if isinstance(args, int):
        return args

    try:
        effective = _repository(args).resolve(args.version)
    except GameDirError as exc:
        return _fail(exc)
    print(json.dumps(effective.to_document(), indent=2))
    return 0


def cmd_libraries(argv: list[str]) -> int:
    parser = _parser("libraries")
    parser.add_argument("version")
    parser.add_argument("--os", default=None, help="OS name override (windows, osx, linux)")
    parser.add_argument("--arch", default=None, help="Architecture override (x86, x86_64, arm64)")
    args = _parse(parser, argv)
    if isinstance(args, int):
        return args

    target = _platform(args)
    try:
        repo = _repository(args)
        effective = repo.resolve(args.version)
    except GameDirError as exc:
        return _fail(exc)

    for lib in effective.classpath_libraries(target):
        print(f"classpath\t{repo.get_library_file(lib)}")
    for lib, _classifier in effective.native_libraries(target):
        print(f"native\t{repo.get_library_file(lib, target)}")
    print(f"jar\t{repo.get_version_jar(effective)}")
    return 0


def cmd_missing(argv: list[str]) -> int:
    parser = _parser("missing")
    parser.add_argument("version")
    parser.add_argument("--os", default=None)
    parser.add_argument("--arch", default=None)
    args = _parse(parser, argv)
    if isinstance(args, int):
        return args

    try:
        missing = _repository(args).find_missing(args.version, _platform(args))
    except GameDirError as exc:
        return _fail(exc)
    for item in missing:
        print(f"{item.kind}\t{item.name}\t{item.path}")
    print(f"OK: {len(missing)} missing files")
    return 0


def cmd_assets(argv: list[str]) -> int:
    parser = _parser("assets")
    parser.add_argument("version")
    args = _parse(parser, argv)
    if isinstance(args, int):
        return args

    try:
        repo = _repository(args)
        asset_id = repo.resolve(args.version).actual_asset_index.id
        directory = repo.get_actual_asset_directory(args.version, asset_id)
    except GameDirError as exc:
        return _fail(exc)
    print(directory)
    return 0


def cmd_verify_assets(argv: list[str]) -> int:
    parser = _parser("verify-assets")
    parser.add_argument("asset_id")
    args = _parse(parser, argv)
    if isinstance(args, int):
        return args

    try:
        report = _repository(args).store.verify_index(args.asset_id)
    except GameDirError as exc:
        return _fail(exc)

    for name in report.missing:
        print(f"ERROR: missing asset object: {name}", file=sys.stderr)
    for name in report.corrupted:
        print(f"ERROR: corrupted asset object: {name}", file=sys.stderr)
    if not report.ok:
        return 1
    print(f"OK: {report.total} objects verified")
    return 0


def cmd_rename(argv: list[str]) -> int:
    parser = _parser("rename")
    parser.add_argument("from_id", metavar="from")
    parser.add_argument("to_id", metavar="to")
    args = _parse(parser, argv)
    if isinstance(args, int):
        return args

    try:
        _repository(args).rename_version(args.from_id, args.to_id)
    except GameDirError as exc:
        return _fail(exc)
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        return 2
    print(f"OK: renamed {args.from_id} -> {args.to_id}")
    return 0


def cmd_validate(argv: list[str]) -> int:
    """Delegate to validate_gamedir.py."""
    return subprocess.run([sys.executable, str(_VALIDATE_SCRIPT), *argv]).returncode


# ---------------------------------------------------------------------------
# entry point
# ---------------------------------------------------------------------------

_COMMANDS = {
    "list": cmd_list,
    "resolve": cmd_resolve,
    "libraries": cmd_libraries,
    "missing": cmd_missing,
    "assets": cmd_assets,
    "verify-assets": cmd_verify_assets,
    "rename": cmd_rename,
    "validate": cmd_validate,
}


def main() -> None:
    if len(sys.argv) < 2:
        print(_USAGE, file=sys.stderr)
        sys.exit(2)

    subcmd, rest = sys.argv[1], sys.argv[2:]
    command = _COMMANDS.get(subcmd)
    if command is None:
        print(f"Unknown subcommand: {subcmd!r}\n{_USAGE}", file=sys.stderr)
        sys.exit(2)
    sys.exit(command(rest))


if __name__ == "__main__":
    main()
