from dataclasses import asdict
from typing import Iterable, List, Optional, Set, Type

from ..models import (CodeSection, FileRecord, MarkdownSection, MetadataSection,
                      PdfDocumentSection, VectorGraphicsSection)
from ..scanning.filesystem import CoreAttributes
from .documents import prefers_document


def _first(sections: List[MetadataSection], cls: Type[MetadataSection]) -> Optional[MetadataSection]:
    return next((s for s in sections if isinstance(s, cls)), None)


def aggregate(core: CoreAttributes, sections: Iterable[Optional[MetadataSection]]) -> FileRecord:
    """
    Assembles the immutable FileRecord for one path.

    - None and all-null sections are dropped.
    - Only the first section of each type is kept.
    - A PDF document and a vector section never coexist: the document wins
      when it has several pages or a title/author, otherwise the vector does.
    - Markdown files do not also carry a source-code section.
    """
    kept: List[MetadataSection] = []
    seen: Set[type] = set()
    for section in sections:
        if section is None or not section.has_data():
            continue
        if type(section) in seen:
            continue
        seen.add(type(section))
        kept.append(section)

    document = _first(kept, PdfDocumentSection)
    vector = _first(kept, VectorGraphicsSection)
    if document is not None and vector is not None and vector.format == 'PDF':
        loser = vector if prefers_document(document) else document
        kept.remove(loser)

    if _first(kept, MarkdownSection) is not None:
        kept = [s for s in kept if not isinstance(s, CodeSection)]

    return FileRecord(sections=tuple(kept), **asdict(core))
