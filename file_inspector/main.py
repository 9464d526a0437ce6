import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from tqdm import tqdm

from .core import FileInspector
from .scanning.filesystem import iter_files


def setup_logging(verbose: bool, log_file: Optional[Path] = None):
    """Sets up logging to stderr and, optionally, a file."""
    log_level = logging.DEBUG if verbose else logging.INFO

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding='utf-8'))

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=handlers
    )

    # Silence chatty libraries
    logging.getLogger("exifread").setLevel(logging.ERROR)
    logging.getLogger("PIL").setLevel(logging.WARNING)
    logging.getLogger("fontTools").setLevel(logging.WARNING)
    logging.getLogger("pypdf").setLevel(logging.ERROR)


def parse_args(argv: Optional[List[str]] = None):
    p = argparse.ArgumentParser(description="File Inspector: describe files and their format metadata as JSON")

    p.add_argument("paths", type=Path, nargs="+", help="Files or directories to inspect")

    p.add_argument("-r", "--recursive", action="store_true", help="Inspect every file under directory arguments")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    p.add_argument("--log-file", type=Path, default=None, help="Also write the log to this file")
    p.add_argument("--output", type=Path, default=None, help="Write JSON here instead of stdout")

    return p.parse_args(argv)


def collect_paths(paths: List[Path], recursive: bool) -> List[Path]:
    """Expands directory arguments when recursing; bundle directories stay whole."""
    collected = []
    for path in paths:
        collected.append(path)
        if recursive and path.is_dir():
            collected.extend(iter_files(path))
    return collected


def main(argv: Optional[List[str]] = None):
    args = parse_args(argv)
    setup_logging(args.verbose, args.log_file)

    targets = collect_paths(args.paths, args.recursive)
    logging.debug(f"Inspecting {len(targets)} path(s)")

    inspector = FileInspector()
    try:
        progress = tqdm(targets, desc="Inspecting", disable=len(targets) < 2, file=sys.stderr)
        records = [r.to_dict() for r in inspector.describe_many(progress)]
    except KeyboardInterrupt:
        logging.warning("Operation cancelled by user.")
        sys.exit(1)

    payload = records[0] if len(args.paths) == 1 and not args.recursive and records else records
    text = json.dumps(payload, indent=2, ensure_ascii=False)

    if args.output:
        args.output.write_text(text + "\n", encoding='utf-8')
        logging.info(f"Wrote {len(records)} record(s) to {args.output}")
    else:
        print(text)

    if len(records) < len(targets):
        sys.exit(1)


if __name__ == "__main__":
    main()
