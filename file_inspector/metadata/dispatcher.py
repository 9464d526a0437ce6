import logging
from pathlib import Path
from typing import Callable, Dict, List, Optional

from ..config import InspectorSettings
from ..exceptions import MetadataExtractionError
from ..models import MetadataSection
from ..process.runner import CommandRunner
from ..scanning.classifier import FormatFamily, format_extension
from .binary import SQLiteInspector, read_psd_metadata
from .documents import (build_font_section, build_office_section, build_pdf_section,
                        prefers_document)
from .external import (AppBundleInspector, ArchiveInspector, CodeSigningInspector,
                       DiskImageInspector, ExecutableInspector, GitInspector)
from .markup import analyze_pdf_content, read_eps_metadata, read_html_metadata, read_svg_metadata
from .media import (build_audio_section, build_exif_section, build_image_extended_section,
                    build_video_section)
from .packages import read_epub_metadata, read_model_metadata, read_xcode_project
from .providers import (DocumentMetadataProvider, FontMetadataProvider, ImageMetadataProvider,
                        MediaMetadataProvider)
from .text import (read_code_metadata, read_config_metadata, read_markdown_metadata,
                   read_subtitle_metadata)

Extractor = Callable[[Path, str], List[Optional[MetadataSection]]]


class ExtractionDispatcher:
    """
    Routes each candidate family to its extractor and isolates failures:
    an extractor that raises yields no section and never aborts the record.
    """

    def __init__(self,
                 settings: InspectorSettings,
                 runner: CommandRunner,
                 image_provider: ImageMetadataProvider,
                 media_provider: MediaMetadataProvider,
                 document_provider: DocumentMetadataProvider,
                 font_provider: FontMetadataProvider):
        self.settings = settings
        self.image_provider = image_provider
        self.media_provider = media_provider
        self.document_provider = document_provider
        self.font_provider = font_provider

        signing = CodeSigningInspector(runner, settings)
        self.sqlite = SQLiteInspector()
        self.archives = ArchiveInspector(runner, settings)
        self.disk_images = DiskImageInspector(runner, settings)
        self.executables = ExecutableInspector(runner, settings, signing)
        self.app_bundles = AppBundleInspector(signing)
        self.git = GitInspector(runner, settings)

        self._extractors: Dict[FormatFamily, Extractor] = {
            FormatFamily.IMAGE: self._image,
            FormatFamily.IMAGE_EXTENDED: self._image_extended,
            FormatFamily.VIDEO: self._video,
            FormatFamily.AUDIO: self._audio,
            FormatFamily.PDF: self._pdf,
            FormatFamily.OFFICE: self._office,
            FormatFamily.EBOOK: self._ebook,
            FormatFamily.CODE: self._code,
            FormatFamily.FONT: self._font,
            FormatFamily.DISK_IMAGE: self._disk_image,
            FormatFamily.VECTOR: self._vector,
            FormatFamily.SUBTITLE: self._subtitle,
            FormatFamily.HTML: self._html,
            FormatFamily.MARKDOWN: self._markdown,
            FormatFamily.CONFIG: self._config,
            FormatFamily.LAYERED_IMAGE: self._layered_image,
            FormatFamily.EXECUTABLE: self._executable,
            FormatFamily.APP_BUNDLE: self._app_bundle,
            FormatFamily.EMBEDDED_DATABASE: self._database,
            FormatFamily.GIT: self._git,
            FormatFamily.XCODE_PROJECT: self._xcode_project,
            FormatFamily.MODEL_3D: self._model_3d,
            FormatFamily.ARCHIVE: self._archive,
        }

    def extractor_for(self, family: FormatFamily) -> Extractor:
        return self._extractors[family]

    def extract(self, path: Path, families: List[FormatFamily]) -> List[MetadataSection]:
        """
        Runs every candidate family's extractor in order.

        Returns:
            The non-empty sections produced, in family order.
        """
        ext = format_extension(path) or ''
        sections: List[MetadataSection] = []
        for family in families:
            for section in self._run(family, path, ext):
                if section is not None and section.has_data():
                    sections.append(section)
        return sections

    def _run(self, family: FormatFamily, path: Path, ext: str) -> List[Optional[MetadataSection]]:
        extractor = self.extractor_for(family)
        try:
            return extractor(path, ext)
        except MetadataExtractionError as e:
            logging.debug(f"No {family.value} metadata for {path}: {e}")
        except OSError as e:
            logging.warning(f"Could not read {path} for {family.value} metadata: {e}")
        except Exception as e:
            logging.error(f"Unexpected error extracting {family.value} metadata from {path}: {e}")
        return []

    # --- Provider-backed families ---

    def _image(self, path: Path, ext: str):
        return [build_exif_section(self.image_provider.read(path))]

    def _image_extended(self, path: Path, ext: str):
        return [build_image_extended_section(self.image_provider.read(path))]

    def _video(self, path: Path, ext: str):
        return [build_video_section(self.media_provider.read(path), ext)]

    def _audio(self, path: Path, ext: str):
        return [build_audio_section(self.media_provider.read(path))]

    def _office(self, path: Path, ext: str):
        return [build_office_section(self.document_provider.read_office(path), ext)]

    def _font(self, path: Path, ext: str):
        return [build_font_section(self.font_provider.read(path))]

    def _pdf(self, path: Path, ext: str):
        """
        A PDF is reported as a document or as vector artwork, never both.
        Multi-page or titled/authored files are documents; otherwise the
        first page is probed for painted paths, falling back to the document.
        """
        bag = self.document_provider.read_pdf(path)
        document = build_pdf_section(bag)
        if prefers_document(document):
            return [document]

        bag = bag or {}
        content = self.document_provider.read_pdf_page_content(path, 0)
        if content:
            vector = analyze_pdf_content(content,
                                         media_box=bag.get('media_box'),
                                         creator=bag.get('creator'),
                                         version=bag.get('version'))
            if vector is not None and vector.has_data():
                return [vector]
        return [document]

    # --- Text and markup ---

    def _code(self, path: Path, ext: str):
        return [read_code_metadata(path, ext, self.settings.max_code_bytes)]

    def _markdown(self, path: Path, ext: str):
        return [read_markdown_metadata(path, self.settings.max_markdown_bytes)]

    def _config(self, path: Path, ext: str):
        return [read_config_metadata(path, ext, self.settings.max_config_bytes)]

    def _html(self, path: Path, ext: str):
        return [read_html_metadata(path, self.settings.max_html_bytes)]

    def _subtitle(self, path: Path, ext: str):
        return [read_subtitle_metadata(path, ext, self.settings.max_subtitle_bytes)]

    def _vector(self, path: Path, ext: str):
        if ext in ('svg', 'svgz'):
            return [read_svg_metadata(path, ext == 'svgz', self.settings.max_svg_bytes)]
        return [read_eps_metadata(path, ext, self.settings.eps_header_bytes)]

    def _ebook(self, path: Path, ext: str):
        if ext != 'epub':
            logging.debug(f"Unsupported e-book format '{ext}': {path}")
            return []
        return [read_epub_metadata(path)]

    def _model_3d(self, path: Path, ext: str):
        return [read_model_metadata(path, ext, self.settings.max_model_text_bytes)]

    def _xcode_project(self, path: Path, ext: str):
        return [read_xcode_project(path)]

    # --- Binary structures ---

    def _layered_image(self, path: Path, ext: str):
        return [read_psd_metadata(path)]

    def _database(self, path: Path, ext: str):
        return [self.sqlite.read(path)]

    # --- External tools ---

    def _archive(self, path: Path, ext: str):
        return [self.archives.read(path, ext)]

    def _disk_image(self, path: Path, ext: str):
        return [self.disk_images.read(path)]

    def _executable(self, path: Path, ext: str):
        return [self.executables.read(path)]

    def _app_bundle(self, path: Path, ext: str):
        return [self.app_bundles.read(path)]

    def _git(self, path: Path, ext: str):
        return [self.git.read(path)]
