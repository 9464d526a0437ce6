"""
Fixed-layout decoders for self-contained binary formats:
Photoshop (PSD/PSB) headers and SQLite database catalogues.
"""
import logging
import sqlite3
import struct
from contextlib import closing
from pathlib import Path
from typing import Optional

from .. import config
from ..exceptions import MetadataExtractionError
from ..models import EmbeddedDatabaseSection, LayeredImageSection

# signature, version, reserved, channels, height, width, depth, color mode
_PSD_HEADER = struct.Struct(">4sH6sHIIHH")


def parse_psd_header(data: bytes) -> LayeredImageSection:
    """
    Decodes the 26-byte PSD/PSB file header.

    Layer count and resolution live in variable-length trailing sections
    and are left unset.

    Raises:
        MetadataExtractionError: data is too short or the signature is wrong.
    """
    if len(data) < config.LAYERED_IMAGE_HEADER_SIZE:
        raise MetadataExtractionError(f"PSD header too short ({len(data)} bytes)")

    sig, version, _reserved, channels, height, width, depth, mode = _PSD_HEADER.unpack(
        data[:config.LAYERED_IMAGE_HEADER_SIZE]
    )
    if sig != config.LAYERED_IMAGE_MAGIC:
        raise MetadataExtractionError(f"Bad PSD signature {sig!r}")

    return LayeredImageSection(
        layer_count=None,
        color_mode=config.PSD_COLOR_MODES.get(mode, 'Unknown'),
        bit_depth=depth,
        resolution=None,
        has_transparency=channels > 3,
        dimensions=f"{width} × {height}",
        version=version,
    )


def read_psd_metadata(path: Path) -> LayeredImageSection:
    """Reads only the fixed header from disk and decodes it."""
    with path.open('rb') as f:
        header = f.read(config.LAYERED_IMAGE_HEADER_SIZE)
    return parse_psd_header(header)


def has_sqlite_magic(path: Path) -> bool:
    try:
        with path.open('rb') as f:
            head = f.read(config.MAGIC_PROBE_BYTES)
    except OSError:
        return False
    return head.startswith(config.SQLITE_MAGIC)


class SQLiteInspector:
    """
    Catalogue-only introspection of an SQLite file.

    The database is opened read-only and only sqlite_master counts and
    three pragmas are queried; rows are never counted. Each query fails
    independently, leaving just its own field unset.
    """

    _COUNT_SQL = "SELECT COUNT(*) FROM sqlite_master WHERE type = ? AND name NOT LIKE 'sqlite_%'"

    def read(self, path: Path) -> Optional[EmbeddedDatabaseSection]:
        if not has_sqlite_magic(path):
            logging.debug(f"Not an SQLite file (magic mismatch): {path}")
            return None

        uri = f"{path.resolve().as_uri()}?mode=ro"
        try:
            conn = sqlite3.connect(uri, uri=True)
        except sqlite3.Error as e:
            logging.warning(f"Could not open SQLite database {path}: {e}")
            return None

        with closing(conn):
            return EmbeddedDatabaseSection(
                table_count=self._count(conn, 'table'),
                index_count=self._count(conn, 'index'),
                trigger_count=self._count(conn, 'trigger'),
                view_count=self._count(conn, 'view'),
                total_rows=None,
                schema_version=self._pragma(conn, 'schema_version'),
                page_size=self._pragma(conn, 'page_size'),
                encoding=self._pragma(conn, 'encoding'),
            )

    def _count(self, conn: sqlite3.Connection, obj_type: str) -> Optional[int]:
        try:
            row = conn.execute(self._COUNT_SQL, (obj_type,)).fetchone()
        except sqlite3.Error as e:
            logging.debug(f"SQLite {obj_type} count failed: {e}")
            return None
        return row[0] if row else None

    def _pragma(self, conn: sqlite3.Connection, name: str):
        try:
            row = conn.execute(f"PRAGMA {name}").fetchone()
        except sqlite3.Error as e:
            logging.debug(f"SQLite PRAGMA {name} failed: {e}")
            return None
        return row[0] if row else None
