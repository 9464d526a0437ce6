"""
Capability interfaces for library-backed metadata readers, plus the default
adapters used when FileInspector is built without explicit providers.

Every provider returns a plain dict ("property bag") or None; mapping a bag
to a MetadataSection is done by the section builders in media.py and
documents.py, so tests can feed hand-written bags without any library.
"""
import io
import logging
import re
import zipfile
import xml.etree.ElementTree as ET
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

from PIL import Image, ImageCms, IptcImagePlugin
from pypdf import PdfReader
from pypdf.errors import PdfReadError
from fontTools.ttLib import TTFont, TTLibError

# Optional imports handled gracefully to prevent crashes if libs are missing
try:
    import exifread
except ImportError:
    exifread = None

MediaInfo: Any = None
try:
    from pymediainfo import MediaInfo
except ImportError:
    MediaInfo = None


class ImageMetadataProvider(Protocol):
    def read(self, path: Path) -> Optional[Dict[str, Any]]: ...


class MediaMetadataProvider(Protocol):
    def read(self, path: Path) -> Optional[Dict[str, Any]]: ...


class DocumentMetadataProvider(Protocol):
    def read_pdf(self, path: Path) -> Optional[Dict[str, Any]]: ...

    def read_pdf_page_content(self, path: Path, index: int) -> Optional[bytes]: ...

    def read_office(self, path: Path) -> Optional[Dict[str, Any]]: ...


class FontMetadataProvider(Protocol):
    def read(self, path: Path) -> Optional[Dict[str, Any]]: ...


# --- Images ---

# Pillow mode -> bits per channel
_MODE_BIT_DEPTH = {
    '1': 1, 'L': 8, 'P': 8, 'RGB': 8, 'RGBA': 8, 'CMYK': 8, 'YCbCr': 8, 'LAB': 8,
    'I;16': 16, 'I;16B': 16, 'I;16L': 16, 'I': 32, 'F': 32,
}

_IPTC_FIELDS = {
    (2, 116): 'copyright',
    (2, 80): 'creator',
    (2, 25): 'keywords',
    (2, 120): 'description',
    (2, 105): 'headline',
}

_XMP_RATING_RE = re.compile(r'xmp:Rating(?:="|>)\s*(-?\d+)')
_XMP_CREATOR_TOOL_RE = re.compile(r'xmp:CreatorTool(?:="([^"]*)"|>([^<]*)<)')
_XMP_GAIN_MAP_MARKERS = ('hdrgm:', 'HDRGainMap', 'apdi:')


def _ratio(value) -> Optional[float]:
    """exifread Ratio -> float across exifread versions."""
    try:
        return float(value)
    except TypeError:
        den = getattr(value, 'den', 0)
        return value.num / den if den else None
    except ZeroDivisionError:
        return None


def _tag_float(tags, key) -> Optional[float]:
    tag = tags.get(key)
    if tag is None or not getattr(tag, 'values', None):
        return None
    return _ratio(tag.values[0])


def _gps_coordinate(tags, key, ref_key) -> Optional[float]:
    tag = tags.get(key)
    if tag is None or len(getattr(tag, 'values', [])) != 3:
        return None
    parts = [_ratio(v) for v in tag.values]
    if any(p is None for p in parts):
        return None
    value = parts[0] + parts[1] / 60 + parts[2] / 3600
    ref = str(tags.get(ref_key, '')).strip().upper()
    return -value if ref in ('S', 'W') else value


def _decode_iptc(value) -> Optional[str]:
    if isinstance(value, list):
        items = [_decode_iptc(v) for v in value]
        return ', '.join(i for i in items if i) or None
    if isinstance(value, bytes):
        value = value.decode('utf-8', errors='replace')
    value = str(value).strip()
    return value or None


class ExifPillowImageProvider:
    """
    Image properties from exifread (camera/exposure/GPS tags) and Pillow
    (dimensions, ICC profile, IPTC, XMP).
    """

    def read(self, path: Path) -> Optional[Dict[str, Any]]:
        bag: Dict[str, Any] = {}
        bag.update(self._read_exif(path))
        bag.update({k: v for k, v in self._read_pillow(path).items() if bag.get(k) is None})
        return bag or None

    def _read_exif(self, path: Path) -> Dict[str, Any]:
        if not exifread:
            logging.warning("exifread module not found. Skipping EXIF tags.")
            return {}
        try:
            with path.open('rb') as f:
                # details=False skips maker notes and thumbnails
                tags = exifread.process_file(f, details=False)
        except Exception as e:
            logging.warning(f"ExifRead failed for {path}: {e}")
            return {}

        def _s(key):
            return str(tags[key]).strip() or None if key in tags else None

        iso = None
        iso_tag = tags.get('EXIF ISOSpeedRatings') or tags.get('EXIF PhotographicSensitivity')
        if iso_tag is not None and getattr(iso_tag, 'values', None):
            iso = int(iso_tag.values[0])

        width = tags.get('EXIF ExifImageWidth')
        height = tags.get('EXIF ExifImageLength')

        return {k: v for k, v in {
            'make': _s('Image Make'),
            'model': _s('Image Model'),
            'lens': _s('EXIF LensModel'),
            'focal_length': _tag_float(tags, 'EXIF FocalLength'),
            'f_number': _tag_float(tags, 'EXIF FNumber'),
            'exposure_time': _tag_float(tags, 'EXIF ExposureTime'),
            'iso': iso,
            'date_taken': _s('EXIF DateTimeOriginal') or _s('Image DateTime'),
            'width': int(width.values[0]) if width is not None and width.values else None,
            'height': int(height.values[0]) if height is not None and height.values else None,
            'color_space': _s('EXIF ColorSpace'),
            'gps_latitude': _gps_coordinate(tags, 'GPS GPSLatitude', 'GPS GPSLatitudeRef'),
            'gps_longitude': _gps_coordinate(tags, 'GPS GPSLongitude', 'GPS GPSLongitudeRef'),
            'copyright': _s('Image Copyright'),
            'creator': _s('Image Artist'),
            'creator_tool': _s('Image Software'),
            'description': _s('Image ImageDescription'),
        }.items() if v is not None}

    def _read_pillow(self, path: Path) -> Dict[str, Any]:
        bag: Dict[str, Any] = {}
        try:
            with Image.open(path) as im:
                bag['width'], bag['height'] = im.size
                bag['bit_depth'] = _MODE_BIT_DEPTH.get(im.mode)

                icc = im.info.get('icc_profile')
                if icc:
                    bag['icc_profile'] = self._icc_description(icc)

                iptc = IptcImagePlugin.getiptcinfo(im) or {}
                for key, name in _IPTC_FIELDS.items():
                    if key in iptc:
                        bag[name] = _decode_iptc(iptc[key])

                xmp = im.info.get('xmp') or im.info.get('XML:com.adobe.xmp')
                if xmp:
                    bag.update(self._xmp_fields(xmp))
        except Exception as e:
            logging.debug(f"Pillow could not read {path}: {e}")
        return {k: v for k, v in bag.items() if v is not None}

    def _icc_description(self, icc: bytes) -> Optional[str]:
        try:
            profile = ImageCms.ImageCmsProfile(io.BytesIO(icc))
            return ImageCms.getProfileDescription(profile).strip() or None
        except (OSError, ImageCms.PyCMSError) as e:
            logging.debug(f"Unreadable ICC profile: {e}")
            return None

    def _xmp_fields(self, xmp) -> Dict[str, Any]:
        if isinstance(xmp, bytes):
            xmp = xmp.decode('utf-8', errors='replace')
        fields: Dict[str, Any] = {}
        m = _XMP_RATING_RE.search(xmp)
        if m:
            fields['rating'] = int(m.group(1))
        m = _XMP_CREATOR_TOOL_RE.search(xmp)
        if m:
            fields['creator_tool'] = (m.group(1) or m.group(2) or '').strip() or None
        if any(marker in xmp for marker in _XMP_GAIN_MAP_MARKERS):
            fields['has_hdr_gain_map'] = True
        return fields


# --- Audio / Video ---

class MediaInfoProvider:
    """Track dictionaries from pymediainfo, grouped by track type."""

    def read(self, path: Path) -> Optional[Dict[str, Any]]:
        if MediaInfo is None:
            logging.warning("pymediainfo module not found. Skipping media metadata.")
            return None
        try:
            mi = MediaInfo.parse(str(path))
        except Exception as e:
            logging.debug(f"MediaInfo failed for {path}: {e}")
            return None

        bag: Dict[str, Any] = {'general': {}, 'video': [], 'audio': [], 'text': [], 'menu': []}
        for track in mi.tracks:
            kind = (track.track_type or '').lower()
            data = track.to_data()
            if kind == 'general':
                bag['general'] = data
            elif kind in bag:
                bag[kind].append(data)
        return bag


# --- Documents ---

_OOXML_NS = {
    'dc': 'http://purl.org/dc/elements/1.1/',
    'cp': 'http://schemas.openxmlformats.org/package/2006/metadata/core-properties',
    'dcterms': 'http://purl.org/dc/terms/',
    'ep': 'http://schemas.openxmlformats.org/officeDocument/2006/extended-properties',
    'ss': 'http://schemas.openxmlformats.org/spreadsheetml/2006/main',
}


def _pdf_date(value) -> Optional[str]:
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M:%S")
    return None


def _pdf_text(value) -> Optional[str]:
    if value is None:
        return None
    return str(value).strip() or None


def _xml_text(root: ET.Element, query: str) -> Optional[str]:
    el = root.find(query, _OOXML_NS)
    if el is None or el.text is None:
        return None
    return el.text.strip() or None


def _xml_int(root: ET.Element, query: str) -> Optional[int]:
    text = _xml_text(root, query)
    return int(text) if text and text.isdigit() else None


class PypdfDocumentProvider:
    """
    PDF properties via pypdf; Office Open XML properties straight from the
    docProps parts of the zip package. Legacy binary Office files are not read.
    """

    def read_pdf(self, path: Path) -> Optional[Dict[str, Any]]:
        try:
            reader = PdfReader(str(path))
        except (PdfReadError, OSError, ValueError) as e:
            logging.warning(f"pypdf could not open {path}: {e}")
            return None

        bag: Dict[str, Any] = {'is_encrypted': reader.is_encrypted}
        if reader.is_encrypted:
            try:
                reader.decrypt('')
            except Exception as e:
                logging.debug(f"Encrypted PDF {path} has a user password: {e}")
                return bag

        header = getattr(reader, 'pdf_header', '') or ''
        m = re.match(r'%PDF-(\d+\.\d+)', header)
        if m:
            bag['version'] = m.group(1)

        try:
            meta = reader.metadata
            if meta:
                bag.update({
                    'title': _pdf_text(meta.title),
                    'author': _pdf_text(meta.author),
                    'subject': _pdf_text(meta.subject),
                    'creator': _pdf_text(meta.creator),
                    'producer': _pdf_text(meta.producer),
                    'keywords': _pdf_text(meta.get('/Keywords')),
                    'creation_date': _pdf_date(meta.creation_date),
                    'modification_date': _pdf_date(meta.modification_date),
                })
        except (PdfReadError, ValueError) as e:
            logging.debug(f"Unreadable PDF info dictionary in {path}: {e}")

        try:
            bag['page_count'] = len(reader.pages)
            if bag['page_count']:
                box = reader.pages[0].mediabox
                bag['media_box'] = (float(box.width), float(box.height))
        except (PdfReadError, ValueError, KeyError) as e:
            logging.debug(f"Unreadable page tree in {path}: {e}")

        return bag

    def read_pdf_page_content(self, path: Path, index: int) -> Optional[bytes]:
        try:
            reader = PdfReader(str(path))
            if reader.is_encrypted:
                reader.decrypt('')
            page = reader.pages[index]
            contents = page.get_contents()
            return contents.get_data() if contents is not None else None
        except Exception as e:
            logging.debug(f"Could not read content stream of page {index} in {path}: {e}")
            return None

    def read_office(self, path: Path) -> Optional[Dict[str, Any]]:
        try:
            with zipfile.ZipFile(path) as z:
                names = set(z.namelist())
                core = ET.fromstring(z.read('docProps/core.xml')) if 'docProps/core.xml' in names else None
                app = ET.fromstring(z.read('docProps/app.xml')) if 'docProps/app.xml' in names else None
                workbook = ET.fromstring(z.read('xl/workbook.xml')) if 'xl/workbook.xml' in names else None
        except (zipfile.BadZipFile, OSError, ET.ParseError) as e:
            logging.debug(f"Not an Office Open XML package: {path}: {e}")
            return None

        bag: Dict[str, Any] = {}
        if core is not None:
            bag.update({
                'title': _xml_text(core, 'dc:title'),
                'authors': [a for a in [_xml_text(core, 'dc:creator')] if a],
                'subject': _xml_text(core, 'dc:subject'),
                'keywords': self._split_keywords(_xml_text(core, 'cp:keywords')),
                'comment': _xml_text(core, 'dc:description'),
                'last_used_date': _xml_text(core, 'cp:lastPrinted'),
                'creation_date': _xml_text(core, 'dcterms:created'),
                'modification_date': _xml_text(core, 'dcterms:modified'),
                'category': _xml_text(core, 'cp:category'),
            })
        if app is not None:
            bag.update({
                'page_count': _xml_int(app, 'ep:Pages') or _xml_int(app, 'ep:Slides'),
                'word_count': _xml_int(app, 'ep:Words'),
                'company': _xml_text(app, 'ep:Company'),
            })
        if workbook is not None:
            bag['page_count'] = len(workbook.findall('.//ss:sheet', _OOXML_NS))
        return {k: v for k, v in bag.items() if v not in (None, [])} or None

    def _split_keywords(self, value: Optional[str]) -> Optional[List[str]]:
        if not value:
            return None
        return [k.strip() for k in re.split(r'[,;]', value) if k.strip()]


# --- Fonts ---

class FontToolsFontProvider:
    """Name-table and glyph data via fontTools (first face of a collection)."""

    _NAME_IDS = {
        'copyright': 0,
        'font_family': 1,
        'font_style': 2,
        'font_name': 4,
        'version': 5,
        'designer': 9,
    }

    def read(self, path: Path) -> Optional[Dict[str, Any]]:
        try:
            font = TTFont(str(path), lazy=True, fontNumber=0)
        except (TTLibError, OSError, ImportError) as e:
            # woff2 needs brotli; dfont resource forks are unsupported
            logging.debug(f"fontTools could not open {path}: {e}")
            return None

        try:
            bag: Dict[str, Any] = {}
            if 'name' in font:
                name_table = font['name']
                for key, name_id in self._NAME_IDS.items():
                    value = name_table.getDebugName(name_id)
                    if value:
                        bag[key] = value.strip()
            if 'maxp' in font:
                bag['glyph_count'] = int(font['maxp'].numGlyphs)
            return bag or None
        finally:
            font.close()
