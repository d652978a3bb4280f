"""zynav - code navigation for ZY sources."""

import logging
import sys
import time
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

_HELP = """\
Usage: zynav index [--full] [--dir <path>]
       zynav goto <file> <offset> [--dir <path>]
       zynav watch [--dir <path>]

Commands:
  index    Bring the symbol index up to date (--full rebuilds from scratch)
  goto     Print declaration candidates for the word at <offset> in <file>
  watch    Keep the index fresh while files change (Ctrl+C to stop)

Options:
  --dir <path>    Project root (default: current directory)
  --help, -h      Show this help message and exit
"""


def main() -> None:
    """Entry point for the zynav CLI."""
    args = sys.argv[1:]
    if not args or args[0] in ("--help", "-h"):
        print(_HELP)
        sys.exit(0)

    _configure_logging()
    command, rest = args[0], args[1:]
    if command == "index":
        _run_index(rest)
    elif command == "goto":
        _run_goto(rest)
    elif command == "watch":
        _run_watch(rest)
    else:
        print(f"Unknown command: {command}")
        print("Run 'zynav --help' for usage.")
        sys.exit(1)


def _configure_logging() -> None:
    from zynav.core.config import EnvSettings

    level = EnvSettings().log_level.upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _parse_dir(args: list[str], flags: tuple[str, ...] = ()) -> tuple[Path, set[str], list[str]]:
    """Split *args* into (project dir, boolean flags seen, positionals)."""
    project_dir = Path.cwd()
    seen: set[str] = set()
    positionals: list[str] = []
    i = 0
    while i < len(args):
        arg = args[i]
        if arg == "--dir" and i + 1 < len(args):
            project_dir = Path(args[i + 1])
            i += 2
        elif arg in flags:
            seen.add(arg)
            i += 1
        elif arg.startswith("--"):
            print(f"Unknown argument: {arg}")
            print("Run 'zynav --help' for usage.")
            sys.exit(1)
        else:
            positionals.append(arg)
            i += 1
    return project_dir, seen, positionals


def _run_index(args: list[str]) -> None:
    """Refresh, or with --full rebuild, the index and print its size."""
    from zynav.cli.renderer import Renderer
    from zynav.workspace import Workspace

    project_dir, seen, _ = _parse_dir(args, ("--full",))
    renderer = Renderer()
    full = "--full" in seen

    ws = Workspace(project_dir)
    try:
        renderer.info(f"Indexing {ws.project_dir} ({'full' if full else 'incremental'})...")
        ws.service.warm_up()
        if full:
            stats = ws.reindex()
        else:
            ws.service.ensure_up_to_date(force=True)
            stats = ws.service.stats()
        renderer.stats(stats, str(ws.project_dir))
        renderer.success(f"Snapshots written to {ws.service.store.cache_dir}")
    finally:
        ws.close()


def _run_goto(args: list[str]) -> None:
    """Resolve the declaration under <offset> in <file>."""
    from zynav.cli.renderer import Renderer
    from zynav.navigation.context import word_at
    from zynav.workspace import Workspace

    project_dir, _, positionals = _parse_dir(args)
    renderer = Renderer()
    if len(positionals) != 2 or not positionals[1].isdigit():
        print("Usage: zynav goto <file> <offset> [--dir <path>]")
        sys.exit(1)

    file_path = Path(positionals[0])
    offset = int(positionals[1])
    try:
        text = file_path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        renderer.error(f"Cannot read {file_path}: {exc}")
        sys.exit(1)

    ws = Workspace(project_dir)
    try:
        ws.open(watch=False, wait=True)
        locations = ws.goto_declaration(text, offset, file_path.resolve())
        renderer.candidates(word_at(text, offset).text, locations)
    finally:
        ws.close()


def _run_watch(args: list[str]) -> None:
    """Keep the index up to date until interrupted."""
    from zynav.cli.renderer import Renderer
    from zynav.workspace import Workspace

    project_dir, _, _ = _parse_dir(args)
    renderer = Renderer()

    ws = Workspace(project_dir)
    try:
        ws.open(watch=True, wait=True)
        renderer.stats(ws.service.stats(), str(ws.project_dir))
        if not ws.watcher.is_active():
            renderer.error("File watcher could not be started")
            sys.exit(1)
        renderer.info("Watching for changes (Ctrl+C to stop)...")
        while True:
            time.sleep(1.0)
    except KeyboardInterrupt:
        renderer.info("Stopped.")
    finally:
        ws.close()


if __name__ == "__main__":
    main()
