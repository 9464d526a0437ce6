"""
Configuration constants for the file inspector.
"""
from dataclasses import dataclass, field
from typing import FrozenSet

# --- Extension Tables ---
# Lowercase, without the leading dot. Compound extensions ("tar.gz") are
# resolved by the classifier from the last two dot-segments.
IMAGE_EXTS = {
    'jpg', 'jpeg', 'jpe', 'png', 'gif', 'tif', 'tiff', 'heic', 'heif', 'webp',
    'bmp', 'avif', 'cr2', 'cr3', 'nef', 'arw', 'orf', 'rw2', 'dng', 'raf',
}
VIDEO_EXTS = {'mp4', 'mov', 'm4v', 'avi', 'mkv', 'webm', 'flv', 'wmv', 'mpg', 'mpeg', 'mts', 'm2ts', '3gp'}
AUDIO_EXTS = {'mp3', 'm4a', 'aac', 'wav', 'flac', 'aiff', 'aif', 'ogg', 'opus', 'wma', 'alac'}
PDF_EXTS = {'pdf'}
OFFICE_EXTS = {'docx', 'doc', 'xlsx', 'xls', 'pptx', 'ppt'}
EBOOK_EXTS = {'epub', 'mobi', 'azw', 'azw3', 'fb2', 'lit', 'prc'}
FONT_EXTS = {'ttf', 'otf', 'woff', 'woff2', 'ttc', 'dfont'}
VECTOR_EXTS = {'svg', 'svgz', 'eps', 'ai'}
SUBTITLE_EXTS = {'srt', 'vtt', 'ass', 'ssa', 'sub', 'idx', 'smi'}
HTML_EXTS = {'html', 'htm', 'xhtml'}
MARKDOWN_EXTS = {'md', 'markdown', 'mdown', 'mkd'}
CONFIG_EXTS = {'json', 'yaml', 'yml', 'toml'}
LAYERED_IMAGE_EXTS = {'psd', 'psb'}
DATABASE_EXTS = {'db', 'sqlite', 'sqlite3', 'db3'}
DISK_IMAGE_EXTS = {'dmg', 'iso', 'img', 'sparseimage', 'sparsebundle'}
MODEL_3D_EXTS = {'usdz', 'usda', 'usdc', 'usd', 'obj', 'gltf', 'glb', 'fbx', 'dae', 'stl', 'ply', '3ds'}
IDE_PROJECT_EXTS = {'xcodeproj', 'xcworkspace'}
NATIVE_LIBRARY_EXTS = {'dylib', 'so', 'bundle'}

ZIP_ARCHIVE_EXTS = {'zip', 'jar'}
TAR_ARCHIVE_EXTS = {'tar', 'tar.gz', 'tgz', 'tar.bz2', 'tbz2', 'tar.xz', 'txz'}
ARCHIVE_EXTS = ZIP_ARCHIVE_EXTS | TAR_ARCHIVE_EXTS | {'rar', '7z', 'gz', 'bz2', 'xz'}

ARCHIVE_FORMAT_NAMES = {
    'zip': 'ZIP', 'jar': 'ZIP',
    'rar': 'RAR',
    '7z': '7-Zip',
    'tar': 'TAR',
    'tar.gz': 'TAR.GZ', 'tgz': 'TAR.GZ',
    'tar.bz2': 'TAR.BZ2', 'tbz2': 'TAR.BZ2',
    'tar.xz': 'TAR.XZ', 'txz': 'TAR.XZ',
    'gz': 'GZIP',
    'bz2': 'BZIP2',
    'xz': 'XZ',
}

# tar decompression flag chosen by compound extension
TAR_DECOMPRESSION_FLAGS = {
    'tar': None,
    'tar.gz': '-z', 'tgz': '-z',
    'tar.bz2': '-j', 'tbz2': '-j',
    'tar.xz': '-J', 'txz': '-J',
}

# Executables with these extensions are treated as scripts, not native binaries
SCRIPT_EXTS = {'sh', 'bash', 'zsh', 'py', 'rb', 'pl', 'js', 'ts'}

# --- Source Code ---
LANGUAGE_BY_EXT = {
    # C-family
    'c': 'C', 'h': 'C',
    'cpp': 'C++', 'cc': 'C++', 'cxx': 'C++', 'hpp': 'C++', 'hxx': 'C++',
    'm': 'Objective-C', 'mm': 'Objective-C++',
    'cs': 'C#',
    # Compiled
    'swift': 'Swift', 'rs': 'Rust', 'go': 'Go',
    'kt': 'Kotlin', 'kts': 'Kotlin', 'dart': 'Dart',
    # Scripting
    'py': 'Python', 'pyw': 'Python', 'rb': 'Ruby', 'php': 'PHP',
    'pl': 'Perl', 'pm': 'Perl',
    'sh': 'Shell', 'bash': 'Bash', 'zsh': 'Zsh',
    # JVM
    'java': 'Java', 'scala': 'Scala', 'groovy': 'Groovy',
    # Web
    'js': 'JavaScript', 'mjs': 'JavaScript',
    'ts': 'TypeScript', 'tsx': 'TypeScript', 'jsx': 'JSX',
    'html': 'HTML', 'htm': 'HTML',
    'css': 'CSS', 'scss': 'SCSS', 'sass': 'Sass', 'less': 'Less', 'vue': 'Vue',
    # Other
    'xml': 'XML', 'sql': 'SQL', 'r': 'R', 'lua': 'Lua',
    'vim': 'Vim Script', 'el': 'Emacs Lisp', 'elisp': 'Emacs Lisp',
}
CODE_EXTS = set(LANGUAGE_BY_EXT)

# (single-line prefixes, block open, block close)
_C_STYLE = (('//',), '/*', '*/')
_HASH_STYLE = (('#',), None, None)
COMMENT_SYNTAX = {}
for lang in ('C', 'C++', 'Objective-C', 'Objective-C++', 'C#', 'Swift', 'JavaScript',
             'TypeScript', 'JSX', 'Java', 'Kotlin', 'Scala', 'Groovy', 'Rust', 'Go',
             'Dart', 'PHP', 'CSS', 'SCSS', 'Sass', 'Less'):
    COMMENT_SYNTAX[lang] = _C_STYLE
for lang in ('Python', 'Ruby', 'Shell', 'Bash', 'Zsh', 'Perl', 'R'):
    COMMENT_SYNTAX[lang] = _HASH_STYLE
COMMENT_SYNTAX['HTML'] = ((), '<!--', '-->')
COMMENT_SYNTAX['XML'] = ((), '<!--', '-->')
COMMENT_SYNTAX['Lua'] = (('--',), '--[[', ']]')
COMMENT_SYNTAX['SQL'] = (('--',), '/*', '*/')
COMMENT_SYNTAX['Vim Script'] = (('"',), None, None)
COMMENT_SYNTAX['Emacs Lisp'] = ((';',), None, None)
DEFAULT_COMMENT_SYNTAX = (('//', '#'), '/*', '*/')

# Probed in order, first successful decode wins
ENCODING_PROBES = [
    ('utf-8', 'UTF-8'),
    ('ascii', 'ASCII'),
    ('utf-16', 'UTF-16'),
    ('latin-1', 'ISO-8859-1'),
]

# --- Read Ceilings ---
MAX_CODE_BYTES = 5 * 1024 * 1024          # 5 MB
MAX_HTML_BYTES = 64 * 1024                # 64 KB
MAX_MARKDOWN_BYTES = 1024 * 1024          # 1 MB
MAX_CONFIG_BYTES = 1024 * 1024            # 1 MB
MAX_SVG_BYTES = 5 * 1024 * 1024           # 5 MB, after decompression
MAX_SUBTITLE_BYTES = 5 * 1024 * 1024      # 5 MB
MAX_MODEL_TEXT_BYTES = 10 * 1024 * 1024   # 10 MB
EPS_HEADER_BYTES = 4096                   # only the first 4 KB of EPS/AI is inspected
OBJ_MAX_LINES = 50000
XCODE_MAX_CONFIGURATIONS = 10

# --- Magic Bytes ---
MAGIC_PROBE_BYTES = 16
SQLITE_MAGIC = b'SQLite format'
LAYERED_IMAGE_MAGIC = b'8BPS'
GLB_MAGIC = b'glTF'
LAYERED_IMAGE_HEADER_SIZE = 26

PSD_COLOR_MODES = {
    0: 'Bitmap',
    1: 'Grayscale',
    2: 'Indexed',
    3: 'RGB',
    4: 'CMYK',
    7: 'Multichannel',
    8: 'Duotone',
    9: 'Lab',
}

# --- External Tools ---
QUICK_TOOL_TIMEOUT = 3.0    # seconds; introspection tools (file, codesign, otool, git)
ARCHIVE_TOOL_TIMEOUT = 5.0  # seconds; archive listers and disk-image inspector
POLL_INTERVAL = 0.05        # seconds between liveness checks

APPROVED_TOOLS = frozenset({'zipinfo', 'unzip', 'tar', 'hdiutil', 'file', 'codesign', 'otool', 'git'})

# Entitlement payloads must exceed this size to count as present
ENTITLEMENTS_MIN_BYTES = 100


@dataclass(frozen=True)
class InspectorSettings:
    """
    Explicit knobs for one FileInspector. Defaults come from the module
    constants above; nothing is read from the environment.
    """
    max_code_bytes: int = MAX_CODE_BYTES
    max_html_bytes: int = MAX_HTML_BYTES
    max_markdown_bytes: int = MAX_MARKDOWN_BYTES
    max_config_bytes: int = MAX_CONFIG_BYTES
    max_svg_bytes: int = MAX_SVG_BYTES
    max_subtitle_bytes: int = MAX_SUBTITLE_BYTES
    max_model_text_bytes: int = MAX_MODEL_TEXT_BYTES
    eps_header_bytes: int = EPS_HEADER_BYTES
    quick_timeout: float = QUICK_TOOL_TIMEOUT
    archive_timeout: float = ARCHIVE_TOOL_TIMEOUT
    poll_interval: float = POLL_INTERVAL
    approved_tools: FrozenSet[str] = field(default=APPROVED_TOOLS)
