"""
Regex-based extraction for markup and page-description formats:
SVG/SVGZ, EPS/Illustrator headers, HTML heads and PDF content streams.
"""
import gzip
import logging
import re
from pathlib import Path
from typing import Optional, Tuple

from .. import config
from ..models import HtmlSection, VectorGraphicsSection
from .text import read_capped

# --- SVG ---

_SVG_ROOT_RE = re.compile(r'<svg\b[^>]*>', re.IGNORECASE | re.DOTALL)
_SVG_ELEMENTS = ('<path', '<circle', '<rect', '<ellipse', '<polygon', '<polyline')
_DC_CREATOR_RE = re.compile(r'<dc:creator\b[^>]*>(.*?)</dc:creator>', re.DOTALL)
_TAG_RE = re.compile(r'<[^>]+>')


def _attr(tag: str, name: str) -> Optional[str]:
    # Lookbehind keeps "width" from matching "stroke-width"
    m = re.search(rf'(?<![\w:-]){name}\s*=\s*["\']([^"\']*)["\']', tag)
    if m and m.group(1).strip():
        return m.group(1).strip()
    return None


def parse_svg(text: str, compressed: bool = False) -> VectorGraphicsSection:
    root = _SVG_ROOT_RE.search(text)
    root_tag = root.group(0) if root else ''

    version = _attr(root_tag, 'version')
    width = _attr(root_tag, 'width')
    height = _attr(root_tag, 'height')

    creator = None
    m = _DC_CREATOR_RE.search(text)
    if m:
        creator = _TAG_RE.sub(' ', m.group(1)).strip() or None
        if creator:
            creator = ' '.join(creator.split())
    if creator is None:
        creator = _attr(text, 'generator')

    return VectorGraphicsSection(
        format='SVGZ' if compressed else 'SVG',
        dimensions=f"{width} × {height}" if width and height else None,
        view_box=_attr(root_tag, 'viewBox'),
        element_count=sum(text.count(e) for e in _SVG_ELEMENTS),
        creator=creator,
        version=f"SVG {version}" if version else None,
    )


def read_svg_metadata(path: Path, compressed: bool, limit: int = config.MAX_SVG_BYTES) -> Optional[VectorGraphicsSection]:
    if compressed:
        # Bounded read of the decompressed stream
        try:
            with gzip.open(path, 'rb') as f:
                data = f.read(limit + 1)
        except (OSError, EOFError) as e:
            logging.debug(f"Could not decompress {path}: {e}")
            return None
        if len(data) > limit:
            logging.debug(f"Skipping {path}: decompressed SVG exceeds {limit} bytes")
            return None
    else:
        data = read_capped(path, limit)
        if data is None:
            return None
    return parse_svg(data.decode('utf-8', errors='replace'), compressed=compressed)


# --- EPS / Illustrator ---

_BBOX_RE = re.compile(r'^%%BoundingBox:\s*(-?[\d.]+)\s+(-?[\d.]+)\s+(-?[\d.]+)\s+(-?[\d.]+)', re.MULTILINE)
_CREATOR_RE = re.compile(r'^%%Creator:\s*(.+?)\s*$', re.MULTILINE)
_EPSF_RE = re.compile(r'^%!PS-Adobe-[\d.]+\s+EPSF-([\d.]+)', re.MULTILINE)
_AI_VERSION_RE = re.compile(r'^%AI\d*_CreatorVersion:\s*(\S+)', re.MULTILINE)
_CMYK_RE = re.compile(r'setcmykcolor|%%DocumentProcessColors:|%%CMYKCustomColor|^[\d.\s]+\s[kK]\s*$', re.MULTILINE)
_RGB_RE = re.compile(r'setrgbcolor|%%RGBCustomColor|%%RGBProcessColor|^[\d.\s]+\s(?:Xa|XA)\s*$', re.MULTILINE)


def _num(value: float) -> str:
    return str(int(value)) if value == int(value) else f"{value:g}"


def parse_eps_header(text: str, ext: str) -> VectorGraphicsSection:
    """Parses the DSC comments found in the first few KB of an EPS or AI file."""
    dimensions = None
    m = _BBOX_RE.search(text)
    if m:
        a, b, c, d = (float(g) for g in m.groups())
        dimensions = f"{_num(c - a)} × {_num(d - b)} pt"

    creator = None
    m = _CREATOR_RE.search(text)
    if m:
        creator = m.group(1)

    color_mode = None
    if _CMYK_RE.search(text):
        color_mode = 'CMYK'
    elif _RGB_RE.search(text):
        color_mode = 'RGB'

    version = None
    if ext == 'ai':
        m = _AI_VERSION_RE.search(text)
        if m:
            version = f"Illustrator {m.group(1)}"
    else:
        m = _EPSF_RE.search(text)
        if m:
            version = f"EPSF {m.group(1)}"

    return VectorGraphicsSection(
        format='Adobe Illustrator' if ext == 'ai' else 'EPS',
        dimensions=dimensions,
        color_mode=color_mode,
        creator=creator,
        version=version,
    )


def read_eps_metadata(path: Path, ext: str, header_bytes: int = config.EPS_HEADER_BYTES) -> VectorGraphicsSection:
    with path.open('rb') as f:
        head = f.read(header_bytes)
    return parse_eps_header(head.decode('latin-1'), ext)


# --- HTML ---

_TITLE_RE = re.compile(r'<title[^>]*>([^<]+)</title>', re.IGNORECASE)
_META_RE = re.compile(r'<meta\s+[^>]*>', re.IGNORECASE)
_META_KEY_RE = re.compile(r'(?:name|property)\s*=\s*["\']([^"\']+)["\']', re.IGNORECASE)
_META_CONTENT_RE = re.compile(r'content\s*=\s*"([^"]*)"|content\s*=\s*\'([^\']*)\'', re.IGNORECASE)
_CHARSET_RE = re.compile(r'charset\s*=\s*["\']?([^"\'\s;>/]+)', re.IGNORECASE)
_LANG_RE = re.compile(r'<html[^>]*\slang\s*=\s*["\']([^"\']+)["\']', re.IGNORECASE)

_META_FIELDS = {
    'description': 'description',
    'keywords': 'keywords',
    'author': 'author',
    'og:title': 'og_title',
    'og:description': 'og_description',
    'og:image': 'og_image',
    'twitter:card': 'twitter_card',
}


def parse_html(text: str) -> HtmlSection:
    found = {}

    m = _TITLE_RE.search(text)
    if m and m.group(1).strip():
        found['title'] = m.group(1).strip()

    for tag in _META_RE.findall(text):
        if 'charset' not in found:
            cm = _CHARSET_RE.search(tag)
            if cm:
                found['charset'] = cm.group(1).lower()

        km = _META_KEY_RE.search(tag)
        if not km:
            continue
        field_name = _META_FIELDS.get(km.group(1).strip().lower())
        if field_name is None or field_name in found:
            continue
        vm = _META_CONTENT_RE.search(tag)
        if vm:
            value = vm.group(1) if vm.group(1) is not None else vm.group(2)
            if value.strip():
                found[field_name] = value.strip()

    m = _LANG_RE.search(text)
    if m:
        found['language'] = m.group(1)

    return HtmlSection(**found)


def read_html_metadata(path: Path, limit: int = config.MAX_HTML_BYTES) -> Optional[HtmlSection]:
    data = read_capped(path, limit)
    if data is None:
        return None
    for codec in ('utf-8', 'ascii'):
        try:
            return parse_html(data.decode(codec))
        except UnicodeDecodeError:
            continue
    logging.debug(f"HTML is neither UTF-8 nor ASCII: {path}")
    return None


# --- PDF content streams ---

_PDF_LITERAL_RE = re.compile(rb'\((?:\\.|[^\\()])*\)', re.DOTALL)
_PDF_HEXSTR_RE = re.compile(rb'<[0-9A-Fa-f\s]*>')
_PDF_INLINE_IMAGE_RE = re.compile(rb'\bBI\b.*?\bEI\b', re.DOTALL)
_PDF_NAME_RE = re.compile(rb"/[^\s/\[\]()<>{}%]*")
_PDF_TOKEN_RE = re.compile(rb"[A-Za-z'\"][A-Za-z*'\"0-9]*")

# Operators that paint the current path
PDF_PAINT_OPERATORS = {b'S', b's', b'f', b'f*', b'F', b'B', b'B*', b'b', b'b*'}


def analyze_pdf_content(content: bytes,
                        media_box: Optional[Tuple[float, float]] = None,
                        creator: Optional[str] = None,
                        version: Optional[str] = None) -> Optional[VectorGraphicsSection]:
    """
    Scans a decoded page content stream for path-painting operators.

    Returns:
        A vector section when at least one path is painted, otherwise None.
    """
    stripped = _PDF_INLINE_IMAGE_RE.sub(b' ', content)
    stripped = _PDF_LITERAL_RE.sub(b' ', stripped)
    stripped = _PDF_HEXSTR_RE.sub(b' ', stripped)
    stripped = _PDF_NAME_RE.sub(b" ", stripped)

    tokens = _PDF_TOKEN_RE.findall(stripped)
    painted = sum(1 for t in tokens if t in PDF_PAINT_OPERATORS)
    if painted == 0:
        return None

    ops = set(tokens)
    color_mode = None
    if ops & {b'k', b'K'}:
        color_mode = 'CMYK'
    elif ops & {b'rg', b'RG'}:
        color_mode = 'RGB'
    elif ops & {b'g', b'G'}:
        color_mode = 'Grayscale'

    dimensions = None
    if media_box:
        width, height = media_box
        dimensions = f"{width:.0f} × {height:.0f} pt"

    return VectorGraphicsSection(
        format='PDF',
        dimensions=dimensions,
        element_count=painted,
        color_mode=color_mode,
        creator=creator,
        version=f"PDF {version}" if version else None,
    )
