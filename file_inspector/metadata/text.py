"""
Line-oriented parsers for plain-text formats: source code, Markdown,
structured config (JSON/YAML/TOML) and subtitles.

The parse_* functions are pure and take decoded text; the read_* helpers
enforce the size ceiling and do the file I/O.
"""
import json
import logging
import re
from pathlib import Path
from typing import Any, Optional, Tuple

from .. import config
from ..models import CodeSection, ConfigSection, MarkdownSection, SubtitleSection

_LINK_RE = re.compile(r'\[([^\]]+)\]\([^)]+\)')
_IMAGE_RE = re.compile(r'!\[([^\]]*)\]\([^)]+\)')

SUBTITLE_FORMATS = {
    'srt': 'SubRip',
    'vtt': 'WebVTT',
    'ass': 'Advanced SubStation Alpha',
    'ssa': 'Advanced SubStation Alpha',
    'sub': 'MicroDVD',
    'idx': 'VobSub Index',
    'smi': 'SAMI',
}


def read_capped(path: Path, limit: int) -> Optional[bytes]:
    """
    Reads the whole file if it is no larger than `limit` bytes.

    Returns:
        The file contents, or None when the file is over the ceiling.
    """
    size = path.stat().st_size
    if size > limit:
        logging.debug(f"Skipping {path}: {size} bytes exceeds {limit} byte limit")
        return None
    return path.read_bytes()


def detect_encoding(data: bytes) -> Tuple[str, str]:
    """
    Probes UTF-8, ASCII, UTF-16 and Latin-1 in that order.

    Returns:
        (codec, display_name) of the first codec that decodes cleanly.
    """
    for codec, name in config.ENCODING_PROBES:
        try:
            data.decode(codec)
        except UnicodeDecodeError:
            continue
        return codec, name
    return 'latin-1', 'Unknown'


def _decode_utf8(data: bytes) -> Optional[str]:
    try:
        return data.decode('utf-8')
    except UnicodeDecodeError:
        return None


# --- Source Code ---

def analyze_code(text: str, language: str, encoding: Optional[str] = None) -> CodeSection:
    """
    Classifies each line as blank, comment or code.

    Once a block-comment opener is seen the line, and every line up to and
    including the one holding the closer, counts as comment.
    """
    single, block_open, block_close = config.COMMENT_SYNTAX.get(language, config.DEFAULT_COMMENT_SYNTAX)

    lines = text.splitlines()
    code = comments = blank = 0
    in_block = False

    for line in lines:
        stripped = line.strip()
        if not stripped:
            blank += 1
            continue

        if block_open and block_close:
            if block_open in stripped:
                in_block = True
            if in_block:
                comments += 1
                if block_close in stripped:
                    in_block = False
                continue

        if any(stripped.startswith(p) for p in single):
            comments += 1
        else:
            code += 1

    return CodeSection(
        language=language,
        line_count=len(lines),
        code_lines=code,
        comment_lines=comments,
        blank_lines=blank,
        encoding=encoding,
    )


def read_code_metadata(path: Path, ext: str, limit: int = config.MAX_CODE_BYTES) -> Optional[CodeSection]:
    language = config.LANGUAGE_BY_EXT.get(ext)
    if language is None:
        return None
    data = read_capped(path, limit)
    if data is None:
        return None
    codec, encoding = detect_encoding(data)
    return analyze_code(data.decode(codec, errors='replace'), language, encoding)


# --- Markdown ---

def parse_markdown(text: str) -> MarkdownSection:
    lines = text.splitlines()
    first = lines[0] if lines else None

    fm_format = {'---': 'YAML', '+++': 'TOML', '{': 'JSON'}.get(first)
    has_frontmatter = fm_format is not None
    fm_close = {'YAML': '---', 'TOML': '+++', 'JSON': '}'}.get(fm_format)

    title = None
    if fm_format == 'YAML':
        for line in lines[1:]:
            if line == '---':
                break
            if line.startswith('title:'):
                title = line[len('title:'):].strip().strip('"\'')
                break

    if not title:
        for line in lines:
            if line.startswith('# '):
                title = line[2:].strip()
                break

    in_frontmatter = has_frontmatter
    in_code = False
    words = headings = code_blocks = 0

    for i, line in enumerate(lines):
        if in_frontmatter:
            if i > 0 and line == fm_close:
                in_frontmatter = False
            continue

        if line.startswith('```') or line.startswith('~~~'):
            if not in_code:
                code_blocks += 1
            in_code = not in_code
            continue

        if in_code:
            continue
        if line.startswith('#'):
            headings += 1
        words += len(line.split())

    return MarkdownSection(
        has_frontmatter=has_frontmatter,
        frontmatter_format=fm_format,
        title=title or None,
        word_count=words,
        heading_count=headings,
        link_count=len(_LINK_RE.findall(text)),
        image_count=len(_IMAGE_RE.findall(text)),
        code_block_count=code_blocks,
    )


def read_markdown_metadata(path: Path, limit: int = config.MAX_MARKDOWN_BYTES) -> Optional[MarkdownSection]:
    data = read_capped(path, limit)
    if data is None:
        return None
    text = _decode_utf8(data)
    if text is None:
        logging.debug(f"Markdown is not UTF-8: {path}")
        return None
    return parse_markdown(text)


# --- Structured Config ---

def _count_keys(value: Any) -> int:
    if isinstance(value, dict):
        return len(value) + sum(_count_keys(v) for v in value.values())
    if isinstance(value, list):
        return sum(_count_keys(v) for v in value)
    return 0


def _depth(value: Any) -> int:
    """Nesting depth of mappings; sequences are transparent."""
    if isinstance(value, dict):
        return 1 + max((_depth(v) for v in value.values()), default=0)
    if isinstance(value, list):
        return max((_depth(v) for v in value), default=0)
    return 0


def parse_json_config(text: str) -> ConfigSection:
    try:
        doc = json.loads(text)
    except ValueError:
        return ConfigSection(format='JSON', is_valid=False, has_comments=False, encoding='UTF-8')

    return ConfigSection(
        format='JSON',
        is_valid=True,
        key_count=_count_keys(doc),
        max_depth=max(1, _depth(doc)),
        has_comments=False,
        encoding='UTF-8',
    )


def parse_yaml_config(text: str) -> ConfigSection:
    non_empty = [line for line in text.splitlines() if line.strip()]

    key_count = 0
    has_comments = False
    max_indent = 0
    for line in non_empty:
        stripped = line.strip()
        if stripped.startswith('#'):
            has_comments = True
            continue
        indent = len(line) - len(line.lstrip(' \t'))
        max_indent = max(max_indent, indent)
        if ':' in stripped and not stripped.startswith('-'):
            key_count += 1

    return ConfigSection(
        format='YAML',
        is_valid=bool(text) and key_count > 0,
        key_count=key_count,
        max_depth=max_indent // 2 + 1,
        has_comments=has_comments,
        encoding='UTF-8',
    )


def parse_toml_config(text: str) -> ConfigSection:
    non_empty = [line.strip() for line in text.splitlines() if line.strip()]

    key_count = sum(
        1 for s in non_empty
        if not s.startswith('#') and not s.startswith('[') and '=' in s
    )
    section_depths = [s.count('.') + 1 for s in non_empty if s.startswith('[')]

    return ConfigSection(
        format='TOML',
        is_valid=bool(text),
        key_count=key_count,
        max_depth=max(section_depths, default=1),
        has_comments=any(s.startswith('#') for s in non_empty),
        encoding='UTF-8',
    )


_CONFIG_PARSERS = {
    'json': parse_json_config,
    'yaml': parse_yaml_config,
    'yml': parse_yaml_config,
    'toml': parse_toml_config,
}


def read_config_metadata(path: Path, ext: str, limit: int = config.MAX_CONFIG_BYTES) -> Optional[ConfigSection]:
    parser = _CONFIG_PARSERS.get(ext)
    if parser is None:
        return None
    data = read_capped(path, limit)
    if data is None:
        return None
    text = _decode_utf8(data)
    if text is None:
        logging.debug(f"Config file is not UTF-8: {path}")
        return None
    return parser(text)


# --- Subtitles ---

def _cue_end(line: str, fraction_sep: str) -> Optional[str]:
    parts = line.split(' --> ')
    if len(parts) != 2:
        return None
    # VTT cue settings may follow the end timestamp
    tokens = parts[1].split()
    if not tokens:
        return None
    return tokens[0].split(fraction_sep)[0]


def parse_subtitles(text: str, ext: str) -> SubtitleSection:
    """Counts cues and derives duration/formatting for SRT, VTT and ASS/SSA."""
    lines = [line.strip() for line in text.splitlines()]
    entry_count = None
    duration = None
    language = None
    has_formatting = None

    if ext in ('srt', 'vtt'):
        cues = [line for line in lines if ' --> ' in line]
        entry_count = len(cues)
        if cues:
            duration = _cue_end(cues[-1], ',' if ext == 'srt' else '.')

        if ext == 'srt':
            if any('<' in line and '>' in line for line in lines):
                has_formatting = True
        else:
            has_formatting = '<c>' in text or '<v ' in text
            for line in lines:
                if ' --> ' in line:
                    break
                if line.lower().startswith('language:'):
                    language = line.split(':', 1)[1].strip() or None
                    break

    elif ext in ('ass', 'ssa'):
        in_events = False
        count = 0
        for line in lines:
            if line == '[Events]':
                in_events = True
            elif line.startswith('[') and line.endswith(']'):
                in_events = False
            elif in_events and line.startswith('Dialogue:'):
                count += 1
        entry_count = count
        has_formatting = True

    return SubtitleSection(
        format=SUBTITLE_FORMATS.get(ext, ext.upper()),
        entry_count=entry_count,
        duration=duration,
        language=language,
        has_formatting=has_formatting,
    )


def read_subtitle_metadata(path: Path, ext: str, limit: int = config.MAX_SUBTITLE_BYTES) -> Optional[SubtitleSection]:
    fmt = SUBTITLE_FORMATS.get(ext, ext.upper())
    data = read_capped(path, limit)
    if data is None:
        return SubtitleSection(format=fmt)

    _codec, encoding = detect_encoding(data)
    text = _decode_utf8(data)
    if text is None:
        try:
            text = data.decode('ascii')
        except UnicodeDecodeError:
            return SubtitleSection(format=fmt, encoding=encoding)

    parsed = parse_subtitles(text, ext)
    return SubtitleSection(
        format=parsed.format,
        encoding=encoding,
        entry_count=parsed.entry_count,
        duration=parsed.duration,
        language=parsed.language,
        frame_rate=parsed.frame_rate,
        has_formatting=parsed.has_formatting,
    )
