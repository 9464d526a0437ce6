import logging
import os
from pathlib import Path
from typing import Iterable, Iterator, Optional

from .config import InspectorSettings
from .exceptions import ClassificationError, FileUnreadableError
from .metadata.aggregate import aggregate
from .metadata.dispatcher import ExtractionDispatcher
from .metadata.providers import (DocumentMetadataProvider, ExifPillowImageProvider,
                                 FontMetadataProvider, FontToolsFontProvider,
                                 ImageMetadataProvider, MediaInfoProvider,
                                 MediaMetadataProvider, PypdfDocumentProvider)
from .models import FileRecord
from .process.runner import CommandRunner
from .scanning.classifier import classify
from .scanning.filesystem import read_core_attributes


class FileInspector:
    def __init__(self,
                 settings: Optional[InspectorSettings] = None,
                 runner: Optional[CommandRunner] = None,
                 image_provider: Optional[ImageMetadataProvider] = None,
                 media_provider: Optional[MediaMetadataProvider] = None,
                 document_provider: Optional[DocumentMetadataProvider] = None,
                 font_provider: Optional[FontMetadataProvider] = None):
        """
        Anything not supplied falls back to the library-backed default.

        Args:
            runner: Timeout-guarded command runner shared by every external tool call.
        """
        self.settings = settings or InspectorSettings()
        self.runner = runner or CommandRunner(poll_interval=self.settings.poll_interval,
                                              allowed=self.settings.approved_tools)
        self.dispatcher = ExtractionDispatcher(
            settings=self.settings,
            runner=self.runner,
            image_provider=image_provider or ExifPillowImageProvider(),
            media_provider=media_provider or MediaInfoProvider(),
            document_provider=document_provider or PypdfDocumentProvider(),
            font_provider=font_provider or FontToolsFontProvider(),
        )

    def describe(self, path: Path) -> FileRecord:
        """
        Inspects one file or directory.

        Raises:
            FileUnreadableError: the path is empty, does not exist or cannot be stat'ed.
        """
        if not os.fspath(path):
            raise FileUnreadableError("Cannot describe an empty path")
        path = Path(path)
        try:
            st = path.stat()
        except OSError as e:
            raise FileUnreadableError(f"Cannot stat {path}: {e}") from e

        try:
            families = classify(path, st)
        except ClassificationError as e:
            raise FileUnreadableError(str(e)) from e

        logging.debug(f"{path}: candidate families {[f.value for f in families]}")

        core = read_core_attributes(path, st)
        sections = self.dispatcher.extract(path, families)
        return aggregate(core, sections)

    def describe_many(self, paths: Iterable[Path]) -> Iterator[FileRecord]:
        """Yields a record per readable path; unreadable ones are logged and skipped."""
        for path in paths:
            try:
                yield self.describe(path)
            except FileUnreadableError as e:
                logging.warning(str(e))
