import zipfile

from fontTools.fontBuilder import FontBuilder
from fontTools.pens.ttGlyphPen import TTGlyphPen
from PIL import Image

import file_inspector.metadata.providers as providers_module
from file_inspector.metadata.providers import (ExifPillowImageProvider, FontToolsFontProvider,
                                               MediaInfoProvider, PypdfDocumentProvider)


def write_pdf(path, contents, title=None, version="1.7", width=612, height=792):
    """Writes a minimal PDF with one page per content stream and a correct xref table."""
    n = len(contents)
    kids = " ".join(f"{3 + 2 * i} 0 R" for i in range(n))
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        f"<< /Type /Pages /Kids [{kids}] /Count {n} >>".encode(),
    ]
    for i, content in enumerate(contents):
        objects.append(f"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 {width} {height}] "
                       f"/Contents {4 + 2 * i} 0 R >>".encode())
        objects.append(b"<< /Length %d >>\nstream\n" % len(content) + content + b"\nendstream")
    info = ""
    if title:
        objects.append(f"<< /Title ({title}) /Author (Ada) >>".encode())
        info = f" /Info {len(objects)} 0 R"

    out = bytearray(f"%PDF-{version}\n".encode())
    offsets = []
    for num, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % num + body + b"\nendobj\n"
    xref = len(out)
    out += b"xref\n0 %d\n0000000000 65535 f \n" % (len(objects) + 1)
    for off in offsets:
        out += b"%010d 00000 n \n" % off
    out += f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R{info} >>\nstartxref\n{xref}\n%%EOF\n".encode()
    path.write_bytes(bytes(out))
    return path


CORE_XML = """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<cp:coreProperties xmlns:cp="http://schemas.openxmlformats.org/package/2006/metadata/core-properties"
    xmlns:dc="http://purl.org/dc/elements/1.1/" xmlns:dcterms="http://purl.org/dc/terms/"
    xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance">
  <dc:title>Quarterly Report</dc:title>
  <dc:creator>Ada Lovelace</dc:creator>
  <cp:keywords>finance; q3, draft</cp:keywords>
  <dc:description>Internal only</dc:description>
  <cp:lastPrinted>2024-03-01T09:00:00Z</cp:lastPrinted>
  <dcterms:created xsi:type="dcterms:W3CDTF">2024-01-01T08:00:00Z</dcterms:created>
</cp:coreProperties>
"""

APP_XML = """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<Properties xmlns="http://schemas.openxmlformats.org/officeDocument/2006/extended-properties">
  <Pages>4</Pages>
  <Words>1200</Words>
  <Company>Acme</Company>
</Properties>
"""

WORKBOOK_XML = """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<workbook xmlns="http://schemas.openxmlformats.org/spreadsheetml/2006/main">
  <sheets>
    <sheet name="Summary" sheetId="1"/>
    <sheet name="Data" sheetId="2"/>
    <sheet name="Notes" sheetId="3"/>
  </sheets>
</workbook>
"""


def write_zip(path, parts):
    with zipfile.ZipFile(path, "w") as z:
        for name, text in parts.items():
            z.writestr(name, text)
    return path


# --- PDF ---

def test_pdf_single_page(tmp_path):
    pdf = write_pdf(tmp_path / "one.pdf", [b""])
    bag = PypdfDocumentProvider().read_pdf(pdf)

    assert bag["is_encrypted"] is False
    assert bag["version"] == "1.7"
    assert bag["page_count"] == 1
    assert bag["media_box"] == (612.0, 792.0)


def test_pdf_page_count_and_title(tmp_path):
    pdf = write_pdf(tmp_path / "three.pdf", [b"", b"", b""], title="Annual Review",
                    version="1.4", width=595, height=842)
    bag = PypdfDocumentProvider().read_pdf(pdf)

    assert bag["page_count"] == 3
    assert bag["title"] == "Annual Review"
    assert bag["author"] == "Ada"
    assert bag["version"] == "1.4"
    assert bag["media_box"] == (595.0, 842.0)


def test_pdf_page_content_stream(tmp_path):
    pdf = write_pdf(tmp_path / "logo.pdf", [b"0 0 m 10 10 l 10 0 l h S"])
    content = PypdfDocumentProvider().read_pdf_page_content(pdf, 0)
    assert b"10 10 l" in content
    assert content.rstrip().endswith(b"S")


def test_pdf_page_content_out_of_range(tmp_path):
    pdf = write_pdf(tmp_path / "one.pdf", [b"0 0 m 1 1 l S"])
    assert PypdfDocumentProvider().read_pdf_page_content(pdf, 5) is None


def test_pdf_garbage_is_none(tmp_path):
    bad = tmp_path / "bad.pdf"
    bad.write_bytes(b"not a pdf at all")
    assert PypdfDocumentProvider().read_pdf(bad) is None


# --- Office Open XML ---

def test_docx_properties(tmp_path):
    docx = write_zip(tmp_path / "report.docx", {
        "docProps/core.xml": CORE_XML,
        "docProps/app.xml": APP_XML,
        "word/document.xml": "<w:document/>",
    })
    bag = PypdfDocumentProvider().read_office(docx)

    assert bag["title"] == "Quarterly Report"
    assert bag["authors"] == ["Ada Lovelace"]
    assert bag["keywords"] == ["finance", "q3", "draft"]
    assert bag["comment"] == "Internal only"
    assert bag["last_used_date"] == "2024-03-01T09:00:00Z"
    assert bag["creation_date"] == "2024-01-01T08:00:00Z"
    assert bag["page_count"] == 4
    assert bag["word_count"] == 1200
    assert bag["company"] == "Acme"
    assert "subject" not in bag


def test_xlsx_counts_sheets(tmp_path):
    xlsx = write_zip(tmp_path / "book.xlsx", {
        "docProps/core.xml": CORE_XML,
        "xl/workbook.xml": WORKBOOK_XML,
    })
    bag = PypdfDocumentProvider().read_office(xlsx)
    assert bag["page_count"] == 3
    assert bag["title"] == "Quarterly Report"


def test_office_without_properties_is_none(tmp_path):
    docx = write_zip(tmp_path / "bare.docx", {"word/document.xml": "<w:document/>"})
    assert PypdfDocumentProvider().read_office(docx) is None


def test_office_not_a_zip(tmp_path):
    f = tmp_path / "legacy.docx"
    f.write_bytes(b"\xd0\xcf\x11\xe0 old binary format")
    assert PypdfDocumentProvider().read_office(f) is None


# --- Images ---

def test_jpeg_dimensions_and_exif(tmp_path):
    img = tmp_path / "shot.jpg"
    exif = Image.Exif()
    exif[0x010F] = "Fujifilm"
    exif[0x0110] = "X100V"
    Image.new("RGB", (32, 16), "red").save(img, "JPEG", exif=exif.tobytes())

    bag = ExifPillowImageProvider().read(img)

    assert bag["width"] == 32
    assert bag["height"] == 16
    assert bag["bit_depth"] == 8
    assert bag["make"] == "Fujifilm"
    assert bag["model"] == "X100V"


def test_grayscale_png(tmp_path):
    img = tmp_path / "mask.png"
    Image.new("L", (5, 7)).save(img)
    bag = ExifPillowImageProvider().read(img)
    assert (bag["width"], bag["height"], bag["bit_depth"]) == (5, 7, 8)


def test_unreadable_image_is_none(tmp_path):
    f = tmp_path / "broken.jpg"
    f.write_text("definitely not pixels")
    assert ExifPillowImageProvider().read(f) is None


def test_xmp_fields():
    xmp = b'<rdf:Description xmp:Rating="4" xmp:CreatorTool="Lightroom" hdrgm:Version="1.0"/>'
    assert ExifPillowImageProvider()._xmp_fields(xmp) == {
        "rating": 4, "creator_tool": "Lightroom", "has_hdr_gain_map": True,
    }


# --- Audio / Video ---

class MockTrack:
    def __init__(self, track_type, **kwargs):
        self.track_type = track_type
        self._data = dict(track_type=track_type, **kwargs)

    def to_data(self):
        return self._data


class MockMediaInfo:
    def __init__(self, tracks):
        self.tracks = tracks

    @classmethod
    def parse(cls, path):
        return cls([
            MockTrack("General", format="MPEG-4", duration=5000),
            MockTrack("Video", format="AVC", width=1920, height=1080),
            MockTrack("Audio", format="AAC", channel_s=2),
            MockTrack("Audio", format="AC-3", channel_s=6),
            MockTrack("Menu"),
            MockTrack("Other", format="QuickTime TC"),
        ])


def test_media_tracks_grouped(monkeypatch, tmp_path):
    monkeypatch.setattr(providers_module, "MediaInfo", MockMediaInfo)
    vid = tmp_path / "clip.mp4"
    vid.touch()

    bag = MediaInfoProvider().read(vid)

    assert bag["general"]["duration"] == 5000
    assert [v["format"] for v in bag["video"]] == ["AVC"]
    assert [a["channel_s"] for a in bag["audio"]] == [2, 6]
    assert bag["text"] == []
    assert len(bag["menu"]) == 1


def test_media_without_pymediainfo(monkeypatch, tmp_path):
    monkeypatch.setattr(providers_module, "MediaInfo", None)
    vid = tmp_path / "clip.mp4"
    vid.touch()
    assert MediaInfoProvider().read(vid) is None


def test_media_parse_failure(monkeypatch, tmp_path):
    class FailingMediaInfo:
        @classmethod
        def parse(cls, path):
            raise RuntimeError("libmediainfo not loaded")

    monkeypatch.setattr(providers_module, "MediaInfo", FailingMediaInfo)
    assert MediaInfoProvider().read(tmp_path / "clip.mp4") is None


# --- Fonts ---

def build_font(path):
    fb = FontBuilder(1000, isTTF=True)
    fb.setupGlyphOrder([".notdef", "A"])
    fb.setupCharacterMap({65: "A"})
    empty = TTGlyphPen(None).glyph()
    fb.setupGlyf({".notdef": empty, "A": empty})
    fb.setupHorizontalMetrics({".notdef": (500, 0), "A": (600, 0)})
    fb.setupHorizontalHeader(ascent=800, descent=-200)
    fb.setupNameTable({
        "familyName": "Demo Sans",
        "styleName": "Bold",
        "fullName": "Demo Sans Bold",
        "version": "Version 1.000",
        "designer": "Jo Doe",
    })
    fb.setupOS2()
    fb.setupPost()
    fb.save(str(path))
    return path


def test_font_name_table(tmp_path):
    bag = FontToolsFontProvider().read(build_font(tmp_path / "demo.ttf"))

    assert bag["font_family"] == "Demo Sans"
    assert bag["font_style"] == "Bold"
    assert bag["font_name"] == "Demo Sans Bold"
    assert bag["version"] == "Version 1.000"
    assert bag["designer"] == "Jo Doe"
    assert bag["glyph_count"] == 2


def test_not_a_font(tmp_path):
    f = tmp_path / "fake.ttf"
    f.write_bytes(b"\x00" * 64)
    assert FontToolsFontProvider().read(f) is None
