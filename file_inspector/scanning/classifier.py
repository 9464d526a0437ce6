import logging
import os
import stat
from enum import Enum
from pathlib import Path
from typing import List, Optional, Union

from .. import config
from ..exceptions import ClassificationError


class FormatFamily(Enum):
    """Closed set of file families the dispatcher knows how to probe."""
    IMAGE = "image"
    IMAGE_EXTENDED = "image_extended"
    VIDEO = "video"
    AUDIO = "audio"
    PDF = "pdf"
    OFFICE = "office"
    EBOOK = "ebook"
    CODE = "code"
    FONT = "font"
    DISK_IMAGE = "disk_image"
    VECTOR = "vector"
    SUBTITLE = "subtitle"
    HTML = "html"
    MARKDOWN = "markdown"
    CONFIG = "config"
    LAYERED_IMAGE = "layered_image"
    EXECUTABLE = "executable"
    APP_BUNDLE = "app_bundle"
    EMBEDDED_DATABASE = "embedded_database"
    GIT = "git"
    XCODE_PROJECT = "xcode_project"
    MODEL_3D = "model_3d"
    ARCHIVE = "archive"


# Extension table, probed in this order. One extension may map to several families.
_EXTENSION_TABLE = [
    (config.IMAGE_EXTS, (FormatFamily.IMAGE, FormatFamily.IMAGE_EXTENDED)),
    (config.VIDEO_EXTS, (FormatFamily.VIDEO,)),
    (config.AUDIO_EXTS, (FormatFamily.AUDIO,)),
    (config.PDF_EXTS, (FormatFamily.PDF,)),
    (config.OFFICE_EXTS, (FormatFamily.OFFICE,)),
    (config.EBOOK_EXTS, (FormatFamily.EBOOK,)),
    (config.FONT_EXTS, (FormatFamily.FONT,)),
    (config.VECTOR_EXTS, (FormatFamily.VECTOR,)),
    (config.SUBTITLE_EXTS, (FormatFamily.SUBTITLE,)),
    (config.HTML_EXTS, (FormatFamily.HTML,)),
    (config.MARKDOWN_EXTS, (FormatFamily.MARKDOWN,)),
    (config.CONFIG_EXTS, (FormatFamily.CONFIG,)),
    (config.LAYERED_IMAGE_EXTS, (FormatFamily.LAYERED_IMAGE,)),
    (config.DATABASE_EXTS, (FormatFamily.EMBEDDED_DATABASE,)),
    (config.DISK_IMAGE_EXTS, (FormatFamily.DISK_IMAGE,)),
    (config.MODEL_3D_EXTS, (FormatFamily.MODEL_3D,)),
    (config.ARCHIVE_EXTS, (FormatFamily.ARCHIVE,)),
    (config.CODE_EXTS, (FormatFamily.CODE,)),
]

# Families whose extension guess must be confirmed by the file's leading bytes
_MAGIC = {
    FormatFamily.LAYERED_IMAGE: config.LAYERED_IMAGE_MAGIC,
    FormatFamily.EMBEDDED_DATABASE: config.SQLITE_MAGIC,
}


def file_extension(path: Path) -> Optional[str]:
    """Lowercase text after the last dot, or None."""
    suffix = path.suffix
    return suffix[1:].lower() if len(suffix) > 1 else None


def format_extension(path: Path) -> Optional[str]:
    """
    Extension used for format lookup: the last two dot-segments when they
    form a known compound extension ("tar.gz"), else the last segment.
    """
    suffixes = [s.lower() for s in path.suffixes]
    if len(suffixes) >= 2:
        compound = f"{suffixes[-2][1:]}.{suffixes[-1][1:]}"
        if compound in config.TAR_ARCHIVE_EXTS:
            return compound
    return file_extension(path)


def _read_magic(path: Path) -> bytes:
    try:
        with path.open('rb') as f:
            return f.read(config.MAGIC_PROBE_BYTES)
    except OSError as e:
        logging.debug(f"Could not read magic bytes from {path}: {e}")
        return b''


def _is_executable_candidate(path: Path, ext: Optional[str], st: os.stat_result) -> bool:
    if not stat.S_ISREG(st.st_mode):
        return False
    if ext in config.SCRIPT_EXTS:
        return False
    if ext in config.NATIVE_LIBRARY_EXTS:
        return True
    return bool(st.st_mode & (stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH))


def _classify_directory(path: Path, ext: Optional[str]) -> List[FormatFamily]:
    families = []
    if (path / '.git').exists():
        families.append(FormatFamily.GIT)
    if ext == 'app' and (path / 'Contents' / 'Info.plist').is_file():
        families.append(FormatFamily.APP_BUNDLE)
    if ext in config.IDE_PROJECT_EXTS:
        families.append(FormatFamily.XCODE_PROJECT)
    if ext == 'sparsebundle':
        families.append(FormatFamily.DISK_IMAGE)
    return families


def classify(path: Union[str, Path], st: Optional[os.stat_result] = None) -> List[FormatFamily]:
    """
    Maps a path to the ordered list of families worth probing.

    Args:
        st: stat result for the path, if the caller already has one.

    Returns:
        Candidate families; empty when nothing matches.
    """
    if not os.fspath(path):
        raise ClassificationError("Cannot classify an empty path")
    path = Path(path)

    if st is None:
        st = path.stat()
    ext = format_extension(path)

    if stat.S_ISDIR(st.st_mode):
        return _classify_directory(path, ext)

    families: List[FormatFamily] = []
    if ext:
        for exts, fams in _EXTENSION_TABLE:
            if ext in exts:
                families.extend(f for f in fams if f not in families)

    magic_families = [f for f in families if f in _MAGIC]
    if magic_families:
        head = _read_magic(path)
        for fam in magic_families:
            if not head.startswith(_MAGIC[fam]):
                logging.debug(f"Magic mismatch for {fam.value}: {path}")
                families.remove(fam)

    if not families and _is_executable_candidate(path, ext, st):
        families.append(FormatFamily.EXECUTABLE)

    return families
