import logging
import os
import pwd
import stat
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterator, Optional, Set

from .classifier import file_extension


@dataclass(frozen=True)
class CoreAttributes:
    """Filesystem facts every FileRecord carries, independent of format."""
    name: str
    path: Path
    size: int
    modified: datetime
    created: datetime
    accessed: datetime
    permissions: str
    owner: str
    is_directory: bool
    is_readable: bool
    is_writable: bool
    is_executable: bool
    is_hidden: bool
    extension: Optional[str]
    item_count: Optional[int]


def _owner_name(uid: int) -> str:
    try:
        return pwd.getpwuid(uid).pw_name
    except KeyError:
        return "Unknown"


def _count_children(path: Path) -> Optional[int]:
    try:
        with os.scandir(path) as it:
            return sum(1 for _ in it)
    except OSError as e:
        logging.warning(f"Cannot list directory {path}: {e}")
        return None


def read_core_attributes(path: Path, st: os.stat_result) -> CoreAttributes:
    """
    Builds the core attribute set from an existing stat result.
    Creation time uses st_birthtime where the platform records it.
    """
    is_dir = stat.S_ISDIR(st.st_mode)
    created = getattr(st, 'st_birthtime', None) or st.st_ctime

    return CoreAttributes(
        name=path.name,
        path=path.absolute(),
        size=st.st_size,
        modified=datetime.fromtimestamp(st.st_mtime),
        created=datetime.fromtimestamp(created),
        accessed=datetime.fromtimestamp(st.st_atime),
        permissions=f"{stat.S_IMODE(st.st_mode) & 0o777:03o}",
        owner=_owner_name(st.st_uid),
        is_directory=is_dir,
        is_readable=os.access(path, os.R_OK),
        is_writable=os.access(path, os.W_OK),
        is_executable=os.access(path, os.X_OK),
        is_hidden=path.name.startswith('.'),
        extension=file_extension(path),
        item_count=_count_children(path) if is_dir else None,
    )


def iter_files(root: Path, skip_dirs: Optional[Set[Path]] = None) -> Iterator[Path]:
    """
    Depth-first walker using os.scandir for speed.
    Bundle-like directories (.app, .xcodeproj, git working trees) are
    yielded as items themselves rather than descended into.
    """
    skip_dirs = skip_dirs or set()
    stack = [root]
    while stack:
        current = stack.pop()
        if any(sd == current or sd in current.parents for sd in skip_dirs):
            continue

        try:
            with os.scandir(current) as it:
                entries = list(it)
        except OSError:
            logging.warning(f"Permission denied: {current}")
            continue

        # Sort for stable traversal order
        entries.sort(key=lambda e: e.name.lower())

        dirs = []
        for e in entries:
            p = Path(e.path)
            if e.is_dir(follow_symlinks=False):
                if _is_opaque_directory(p):
                    yield p
                else:
                    dirs.append(p)
            elif e.is_file(follow_symlinks=False):
                yield p

        # Push dirs to stack (reversed so we process A before Z)
        for d in reversed(dirs):
            stack.append(d)


def _is_opaque_directory(path: Path) -> bool:
    ext = file_extension(path)
    return ext in ('app', 'xcodeproj', 'xcworkspace', 'sparsebundle') or (path / '.git').exists()
