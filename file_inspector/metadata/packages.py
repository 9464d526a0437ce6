"""
Readers for formats that are really containers or project trees:
EPUB packages, Xcode project bundles and 3D model files.
"""
import json
import logging
import re
import zipfile
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Optional

from .. import config
from ..exceptions import MetadataExtractionError
from ..models import EbookSection, Model3DSection, XcodeProjectSection
from .text import read_capped

# --- EPUB ---

_CONTAINER_NS = {'c': 'urn:oasis:names:tc:opendocument:xmlns:container'}
_OPF_MEDIA_TYPE = 'application/oebps-package+xml'


def _local(tag: str) -> str:
    return tag.rsplit('}', 1)[-1]


def _first_text(root: ET.Element, name: str) -> Optional[str]:
    for el in root.iter():
        if _local(el.tag) == name and el.text and el.text.strip():
            return el.text.strip()
    return None


def read_epub_metadata(path: Path) -> Optional[EbookSection]:
    """
    Reads Dublin Core fields from the OPF package document.

    Raises:
        MetadataExtractionError: the zip is damaged or the package XML is malformed.
    """
    try:
        with zipfile.ZipFile(path) as zf:
            container = ET.fromstring(zf.read('META-INF/container.xml'))
            rootfile = None
            for rf in container.iterfind('.//c:rootfile', _CONTAINER_NS):
                if rf.get('media-type') == _OPF_MEDIA_TYPE:
                    rootfile = rf.get('full-path')
                    break
            if not rootfile:
                logging.debug(f"EPUB has no OPF rootfile: {path}")
                return None
            opf = ET.fromstring(zf.read(rootfile))
    except KeyError as e:
        logging.debug(f"EPUB missing package member in {path}: {e}")
        return None
    except (zipfile.BadZipFile, ET.ParseError) as e:
        raise MetadataExtractionError(f"Unreadable EPUB {path}: {e}") from e

    isbn = None
    for el in opf.iter():
        if _local(el.tag) != 'identifier' or not el.text:
            continue
        scheme = ''.join(v for k, v in el.attrib.items() if _local(k) == 'scheme').lower()
        if 'isbn' in scheme or 'ISBN' in el.text.upper():
            isbn = el.text.strip()
            break

    return EbookSection(
        title=_first_text(opf, 'title'),
        author=_first_text(opf, 'creator'),
        publisher=_first_text(opf, 'publisher'),
        publication_date=_first_text(opf, 'date'),
        isbn=isbn,
        language=_first_text(opf, 'language'),
        description=_first_text(opf, 'description'),
        page_count=None,
    )


# --- Xcode ---

_DEPLOYMENT_KEYS = [
    ('IPHONEOS_DEPLOYMENT_TARGET', 'iOS'),
    ('MACOSX_DEPLOYMENT_TARGET', 'macOS'),
    ('TVOS_DEPLOYMENT_TARGET', 'tvOS'),
    ('WATCHOS_DEPLOYMENT_TARGET', 'watchOS'),
]


def _pbx_setting(content: str, key: str) -> Optional[str]:
    m = re.search(rf'\b{key} = ([^;]*);', content)
    if not m:
        return None
    value = m.group(1).strip().replace('"', '')
    return value or None


def parse_pbxproj(content: str, project_name: Optional[str] = None) -> XcodeProjectSection:
    config_count = content.count('isa = XCBuildConfiguration')

    deployment = None
    for key, platform in _DEPLOYMENT_KEYS:
        value = _pbx_setting(content, key)
        if value:
            deployment = f"{platform} {value}"
            break

    return XcodeProjectSection(
        project_name=project_name,
        target_count=content.count('isa = PBXNativeTarget'),
        configuration_count=min(config_count, config.XCODE_MAX_CONFIGURATIONS) if config_count else None,
        swift_version=_pbx_setting(content, 'SWIFT_VERSION'),
        deployment_target=deployment,
        organization_name=_pbx_setting(content, 'ORGANIZATIONNAME'),
        has_tests='productType = "com.apple.product-type.bundle.unit-test"' in content,
        has_ui_tests='productType = "com.apple.product-type.bundle.ui-testing"' in content,
    )


def read_xcode_project(path: Path) -> XcodeProjectSection:
    name = path.stem
    if path.suffix.lower() == '.xcodeproj':
        pbxproj = path / 'project.pbxproj'
        if pbxproj.is_file():
            return parse_pbxproj(pbxproj.read_text(encoding='utf-8', errors='replace'), name)
        return XcodeProjectSection(project_name=name)

    workspace_data = path / 'contents.xcworkspacedata'
    target_count = None
    if workspace_data.is_file():
        target_count = workspace_data.read_text(encoding='utf-8', errors='replace').count('<FileRef')
    return XcodeProjectSection(project_name=name, target_count=target_count)


# --- 3D models ---

def model_format_name(ext: str) -> str:
    if ext in ('usdz', 'usda', 'usdc', 'usd'):
        return f"USD ({ext.upper()})"
    return {
        'obj': 'Wavefront OBJ',
        'gltf': 'glTF (JSON)',
        'glb': 'glTF (Binary)',
        'fbx': 'Autodesk FBX',
        'dae': 'COLLADA',
        'stl': 'STL',
        'ply': 'PLY',
        '3ds': '3DS',
    }.get(ext, ext.upper())


def parse_obj(text: str) -> Model3DSection:
    vertices = faces = 0
    materials = set()
    for i, line in enumerate(text.splitlines()):
        if i >= config.OBJ_MAX_LINES:
            break
        s = line.strip()
        if s.startswith('v '):
            vertices += 1
        elif s.startswith('f '):
            faces += 1
        elif s.startswith('usemtl '):
            materials.add(s[len('usemtl '):].strip())
    return Model3DSection(
        format=model_format_name('obj'),
        vertex_count=vertices or None,
        face_count=faces or None,
        material_count=len(materials) or None,
    )


def parse_ascii_stl(text: str) -> Model3DSection:
    facets = sum(1 for line in text.splitlines() if line.strip().lower().startswith('facet normal'))
    return Model3DSection(
        format=model_format_name('stl'),
        face_count=facets or None,
        vertex_count=facets * 3 if facets else None,
    )


def parse_gltf(text: str) -> Model3DSection:
    try:
        doc = json.loads(text)
    except ValueError as e:
        raise MetadataExtractionError(f"Malformed glTF JSON: {e}") from e
    if not isinstance(doc, dict):
        return Model3DSection(format=model_format_name('gltf'))

    def _count(key):
        value = doc.get(key)
        return len(value) if isinstance(value, list) else None

    skins = doc.get('skins')
    return Model3DSection(
        format=model_format_name('gltf'),
        mesh_count=_count('meshes'),
        material_count=_count('materials'),
        animation_count=_count('animations'),
        has_skeleton=True if isinstance(skins, list) and skins else None,
    )


_TEXT_MODEL_PARSERS = {
    'obj': parse_obj,
    'stl': parse_ascii_stl,
    'gltf': parse_gltf,
}


def read_model_metadata(path: Path, ext: str,
                        limit: int = config.MAX_MODEL_TEXT_BYTES) -> Optional[Model3DSection]:
    """Returns None for a .glb file that lacks the binary glTF magic."""
    parser = _TEXT_MODEL_PARSERS.get(ext)
    if parser is not None:
        data = read_capped(path, limit)
        if data is not None:
            try:
                return parser(data.decode('utf-8'))
            except UnicodeDecodeError:
                # Binary STL
                logging.debug(f"{path} is not a text model file")

    if ext == 'glb':
        with path.open('rb') as f:
            magic = f.read(4)
        if magic != config.GLB_MAGIC:
            logging.debug(f"GLB magic mismatch in {path}")
            return None

    return Model3DSection(format=model_format_name(ext))
