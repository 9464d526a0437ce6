from dataclasses import dataclass, fields, asdict
from datetime import datetime
from pathlib import Path
from typing import Any, ClassVar, Dict, Optional, Tuple, Type, TypeVar


S = TypeVar("S", bound="MetadataSection")


@dataclass(frozen=True)
class MetadataSection:
    """
    One optional group of fields for one file family.
    Every field is independently Optional; a section with nothing set is
    never attached to a FileRecord.
    """
    kind: ClassVar[str] = "section"

    def has_data(self) -> bool:
        return any(getattr(self, f.name) is not None for f in fields(self))

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


# --- Media ---

@dataclass(frozen=True)
class ExifSection(MetadataSection):
    kind: ClassVar[str] = "exif"
    camera: Optional[str] = None
    lens: Optional[str] = None
    focal_length: Optional[str] = None
    aperture: Optional[str] = None
    shutter_speed: Optional[str] = None
    iso: Optional[str] = None
    date_taken: Optional[str] = None
    image_size: Optional[str] = None
    color_space: Optional[str] = None
    gps_location: Optional[str] = None
    color_profile: Optional[str] = None
    bit_depth: Optional[int] = None
    has_hdr_gain_map: Optional[bool] = None
    hdr_format: Optional[str] = None


@dataclass(frozen=True)
class VideoSection(MetadataSection):
    kind: ClassVar[str] = "video"
    duration: Optional[str] = None
    resolution: Optional[str] = None
    codec: Optional[str] = None
    frame_rate: Optional[str] = None
    bitrate: Optional[str] = None
    video_tracks: Optional[int] = None
    audio_tracks: Optional[int] = None
    hdr_format: Optional[str] = None
    color_primaries: Optional[str] = None
    transfer_function: Optional[str] = None
    chapter_count: Optional[int] = None
    subtitle_tracks: Optional[int] = None
    attachment_count: Optional[int] = None
    container_format: Optional[str] = None


@dataclass(frozen=True)
class AudioSection(MetadataSection):
    kind: ClassVar[str] = "audio"
    title: Optional[str] = None
    artist: Optional[str] = None
    album: Optional[str] = None
    album_artist: Optional[str] = None
    genre: Optional[str] = None
    year: Optional[str] = None
    duration: Optional[str] = None
    bitrate: Optional[str] = None
    sample_rate: Optional[str] = None
    channels: Optional[str] = None


@dataclass(frozen=True)
class ImageExtendedSection(MetadataSection):
    """IPTC / XMP descriptive fields."""
    kind: ClassVar[str] = "image_extended"
    copyright: Optional[str] = None
    creator: Optional[str] = None
    keywords: Optional[str] = None
    rating: Optional[int] = None
    creator_tool: Optional[str] = None
    description: Optional[str] = None
    headline: Optional[str] = None


# --- Documents ---

@dataclass(frozen=True)
class PdfDocumentSection(MetadataSection):
    kind: ClassVar[str] = "pdf"
    title: Optional[str] = None
    author: Optional[str] = None
    subject: Optional[str] = None
    creator: Optional[str] = None
    producer: Optional[str] = None
    creation_date: Optional[str] = None
    modification_date: Optional[str] = None
    page_count: Optional[int] = None
    page_size: Optional[str] = None
    version: Optional[str] = None
    is_encrypted: Optional[bool] = None
    keywords: Optional[str] = None


@dataclass(frozen=True)
class OfficeSection(MetadataSection):
    kind: ClassVar[str] = "office"
    title: Optional[str] = None
    author: Optional[str] = None
    subject: Optional[str] = None
    keywords: Optional[str] = None
    comment: Optional[str] = None
    last_modified_by: Optional[str] = None
    creation_date: Optional[str] = None
    modification_date: Optional[str] = None
    page_count: Optional[int] = None
    word_count: Optional[int] = None
    sheet_count: Optional[int] = None
    slide_count: Optional[int] = None
    company: Optional[str] = None
    category: Optional[str] = None


@dataclass(frozen=True)
class EbookSection(MetadataSection):
    kind: ClassVar[str] = "ebook"
    title: Optional[str] = None
    author: Optional[str] = None
    publisher: Optional[str] = None
    publication_date: Optional[str] = None
    isbn: Optional[str] = None
    language: Optional[str] = None
    description: Optional[str] = None
    page_count: Optional[int] = None


@dataclass(frozen=True)
class MarkdownSection(MetadataSection):
    kind: ClassVar[str] = "markdown"
    has_frontmatter: Optional[bool] = None
    frontmatter_format: Optional[str] = None   # YAML, TOML, JSON
    title: Optional[str] = None
    word_count: Optional[int] = None
    heading_count: Optional[int] = None
    link_count: Optional[int] = None
    image_count: Optional[int] = None
    code_block_count: Optional[int] = None


@dataclass(frozen=True)
class HtmlSection(MetadataSection):
    kind: ClassVar[str] = "html"
    title: Optional[str] = None
    description: Optional[str] = None
    charset: Optional[str] = None
    og_title: Optional[str] = None
    og_description: Optional[str] = None
    og_image: Optional[str] = None
    twitter_card: Optional[str] = None
    keywords: Optional[str] = None
    author: Optional[str] = None
    language: Optional[str] = None


@dataclass(frozen=True)
class ConfigSection(MetadataSection):
    kind: ClassVar[str] = "config"
    format: Optional[str] = None
    is_valid: Optional[bool] = None
    key_count: Optional[int] = None
    max_depth: Optional[int] = None
    has_comments: Optional[bool] = None
    encoding: Optional[str] = None


# --- Text ---

@dataclass(frozen=True)
class CodeSection(MetadataSection):
    kind: ClassVar[str] = "code"
    language: Optional[str] = None
    line_count: Optional[int] = None
    code_lines: Optional[int] = None
    comment_lines: Optional[int] = None
    blank_lines: Optional[int] = None
    encoding: Optional[str] = None


@dataclass(frozen=True)
class SubtitleSection(MetadataSection):
    kind: ClassVar[str] = "subtitle"
    format: Optional[str] = None
    encoding: Optional[str] = None
    entry_count: Optional[int] = None
    duration: Optional[str] = None
    language: Optional[str] = None
    frame_rate: Optional[str] = None
    has_formatting: Optional[bool] = None


@dataclass(frozen=True)
class FontSection(MetadataSection):
    kind: ClassVar[str] = "font"
    font_name: Optional[str] = None
    font_family: Optional[str] = None
    font_style: Optional[str] = None
    version: Optional[str] = None
    designer: Optional[str] = None
    copyright: Optional[str] = None
    glyph_count: Optional[int] = None


# --- Graphics ---

@dataclass(frozen=True)
class VectorGraphicsSection(MetadataSection):
    kind: ClassVar[str] = "vector"
    format: Optional[str] = None
    dimensions: Optional[str] = None
    view_box: Optional[str] = None
    element_count: Optional[int] = None
    color_mode: Optional[str] = None
    creator: Optional[str] = None
    version: Optional[str] = None


@dataclass(frozen=True)
class LayeredImageSection(MetadataSection):
    kind: ClassVar[str] = "layered_image"
    layer_count: Optional[int] = None
    color_mode: Optional[str] = None
    bit_depth: Optional[int] = None
    resolution: Optional[str] = None
    has_transparency: Optional[bool] = None
    dimensions: Optional[str] = None
    version: Optional[int] = None   # 1 = PSD, 2 = PSB


@dataclass(frozen=True)
class Model3DSection(MetadataSection):
    kind: ClassVar[str] = "model_3d"
    format: Optional[str] = None
    vertex_count: Optional[int] = None
    face_count: Optional[int] = None
    mesh_count: Optional[int] = None
    material_count: Optional[int] = None
    animation_count: Optional[int] = None
    has_skeleton: Optional[bool] = None
    bounding_box: Optional[str] = None


# --- Containers ---

@dataclass(frozen=True)
class ArchiveSection(MetadataSection):
    kind: ClassVar[str] = "archive"
    format: Optional[str] = None
    file_count: Optional[int] = None
    uncompressed_size: Optional[int] = None
    compression_ratio: Optional[float] = None   # percent saved
    is_encrypted: Optional[bool] = None
    comment: Optional[str] = None


@dataclass(frozen=True)
class DiskImageSection(MetadataSection):
    kind: ClassVar[str] = "disk_image"
    format: Optional[str] = None
    total_size: Optional[int] = None
    compressed_size: Optional[int] = None
    compression_ratio: Optional[str] = None     # e.g. "2.5:1"
    is_encrypted: Optional[bool] = None
    partition_scheme: Optional[str] = None
    file_system: Optional[str] = None


# --- Developer ---

@dataclass(frozen=True)
class ExecutableSection(MetadataSection):
    kind: ClassVar[str] = "executable"
    architecture: Optional[str] = None
    is_code_signed: Optional[bool] = None
    signing_authority: Optional[str] = None
    minimum_os: Optional[str] = None
    sdk_version: Optional[str] = None
    file_type: Optional[str] = None


@dataclass(frozen=True)
class AppBundleSection(MetadataSection):
    kind: ClassVar[str] = "app_bundle"
    bundle_id: Optional[str] = None
    version: Optional[str] = None
    build_number: Optional[str] = None
    minimum_os: Optional[str] = None
    category: Optional[str] = None
    copyright: Optional[str] = None
    is_code_signed: Optional[bool] = None
    has_entitlements: Optional[bool] = None


@dataclass(frozen=True)
class EmbeddedDatabaseSection(MetadataSection):
    kind: ClassVar[str] = "database"
    table_count: Optional[int] = None
    index_count: Optional[int] = None
    trigger_count: Optional[int] = None
    view_count: Optional[int] = None
    total_rows: Optional[int] = None    # never computed
    schema_version: Optional[int] = None
    page_size: Optional[int] = None
    encoding: Optional[str] = None


@dataclass(frozen=True)
class GitSection(MetadataSection):
    kind: ClassVar[str] = "git"
    branch_count: Optional[int] = None
    current_branch: Optional[str] = None
    commit_count: Optional[int] = None
    last_commit_date: Optional[str] = None
    last_commit_message: Optional[str] = None
    remote_url: Optional[str] = None
    has_uncommitted_changes: Optional[bool] = None
    tag_count: Optional[int] = None


@dataclass(frozen=True)
class XcodeProjectSection(MetadataSection):
    kind: ClassVar[str] = "xcode_project"
    project_name: Optional[str] = None
    target_count: Optional[int] = None
    configuration_count: Optional[int] = None
    swift_version: Optional[str] = None
    deployment_target: Optional[str] = None
    organization_name: Optional[str] = None
    has_tests: Optional[bool] = None
    has_ui_tests: Optional[bool] = None


@dataclass(frozen=True)
class FileRecord:
    """
    Immutable description of one inspected path: core filesystem
    attributes plus whatever metadata sections survived aggregation.
    """
    name: str
    path: Path
    size: int
    modified: datetime
    created: datetime
    accessed: datetime
    permissions: str            # three octal digits, e.g. "644"
    owner: str
    is_directory: bool
    is_readable: bool
    is_writable: bool
    is_executable: bool
    is_hidden: bool
    extension: Optional[str] = None
    item_count: Optional[int] = None    # directories only
    sections: Tuple[MetadataSection, ...] = ()

    def section(self, cls: Type[S]) -> Optional[S]:
        """Returns the attached section of the given type, if any."""
        for s in self.sections:
            if isinstance(s, cls):
                return s
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'path': str(self.path),
            'size': self.size,
            'modified': self.modified.isoformat(),
            'created': self.created.isoformat(),
            'accessed': self.accessed.isoformat(),
            'permissions': self.permissions,
            'owner': self.owner,
            'is_directory': self.is_directory,
            'is_readable': self.is_readable,
            'is_writable': self.is_writable,
            'is_executable': self.is_executable,
            'is_hidden': self.is_hidden,
            'extension': self.extension,
            'item_count': self.item_count,
            'sections': {s.kind: s.to_dict() for s in self.sections},
        }
