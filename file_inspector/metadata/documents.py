"""
Maps document and font property bags to sections, and holds the
document-vs-vector preference used for single-file PDF inputs.
"""
from typing import Any, Dict, Optional

from ..models import FontSection, OfficeSection, PdfDocumentSection

# (width pt, height pt, tolerance pt, label)
_PAGE_SIZES = [
    (612.0, 792.0, 7.2, 'Letter (8.5" × 11")'),
    (792.0, 1224.0, 7.2, 'Tabloid (11" × 17")'),
    (595.0, 842.0, 2.0, 'A4 (210mm × 297mm)'),
    (420.0, 595.0, 2.0, 'A5 (148mm × 210mm)'),
    (842.0, 1191.0, 2.0, 'A3 (297mm × 420mm)'),
]


def describe_page_size(width: float, height: float) -> str:
    for w, h, tol, label in _PAGE_SIZES:
        if abs(width - w) < tol and abs(height - h) < tol:
            return label
    return f"{width:.0f} × {height:.0f} pt ({width / 72:.1f}\" × {height / 72:.1f}\")"


def build_pdf_section(bag: Optional[Dict[str, Any]]) -> Optional[PdfDocumentSection]:
    if not bag:
        return None
    page_count = bag.get('page_count')
    media_box = bag.get('media_box')
    return PdfDocumentSection(
        title=bag.get('title'),
        author=bag.get('author'),
        subject=bag.get('subject'),
        creator=bag.get('creator'),
        producer=bag.get('producer'),
        creation_date=bag.get('creation_date'),
        modification_date=bag.get('modification_date'),
        page_count=page_count if page_count else None,
        page_size=describe_page_size(*media_box) if media_box else None,
        version=bag.get('version'),
        is_encrypted=True if bag.get('is_encrypted') else None,
        keywords=bag.get('keywords'),
    )


def prefers_document(section: Optional[PdfDocumentSection]) -> bool:
    """
    True when a PDF should be presented as a document regardless of any
    vector content: more than one page, or a title or author is set.
    """
    if section is None:
        return False
    if section.page_count is not None and section.page_count > 1:
        return True
    return section.title is not None or section.author is not None


def build_office_section(bag: Optional[Dict[str, Any]], ext: str) -> Optional[OfficeSection]:
    """
    Page/word counts apply to word-processing files, sheet count to
    spreadsheets, slide count to presentations.

    last_modified_by is filled from the provider's last-used-date property.
    """
    if not bag:
        return None

    authors = bag.get('authors') or []
    keywords = bag.get('keywords') or []
    page_count = bag.get('page_count')
    is_word = ext in ('docx', 'doc')

    last_used = bag.get('last_used_date')
    return OfficeSection(
        title=bag.get('title'),
        author=', '.join(authors) or None,
        subject=bag.get('subject'),
        keywords=', '.join(keywords) or None,
        comment=bag.get('comment'),
        last_modified_by=last_used if isinstance(last_used, str) else None,
        creation_date=bag.get('creation_date'),
        modification_date=bag.get('modification_date'),
        page_count=page_count if is_word else None,
        word_count=bag.get('word_count') if is_word else None,
        sheet_count=page_count if ext in ('xlsx', 'xls') else None,
        slide_count=page_count if ext in ('pptx', 'ppt') else None,
        company=bag.get('company'),
        category=bag.get('category'),
    )


def build_font_section(bag: Optional[Dict[str, Any]]) -> Optional[FontSection]:
    if not bag:
        return None
    return FontSection(
        font_name=bag.get('font_name'),
        font_family=bag.get('font_family'),
        font_style=bag.get('font_style'),
        version=bag.get('version'),
        designer=bag.get('designer'),
        copyright=bag.get('copyright'),
        glyph_count=bag.get('glyph_count'),
    )
