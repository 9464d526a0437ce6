from file_inspector.metadata.text import (analyze_code, detect_encoding, parse_json_config,
                                          parse_markdown, parse_subtitles, parse_toml_config,
                                          parse_yaml_config, read_code_metadata,
                                          read_config_metadata, read_markdown_metadata,
                                          read_subtitle_metadata)


# --- Source code ---

def test_code_line_classification():
    src = "\n".join([
        "// header",
        "#include <stdio.h>",
        "",
        "/* block",
        "   still comment",
        "*/",
        "int main() { return 0; }",
        "/* one-liner */",
    ])
    section = analyze_code(src, "C", "UTF-8")

    assert section.line_count == 8
    assert section.blank_lines == 1
    assert section.comment_lines == 5
    assert section.code_lines == 2
    assert section.language == "C"


def test_python_hash_comments():
    section = analyze_code("# comment\nx = 1\n\n", "Python")
    assert section.comment_lines == 1
    assert section.code_lines == 1
    assert section.blank_lines == 1


def test_encoding_probe_order():
    assert detect_encoding(b"plain") == ("utf-8", "UTF-8")
    assert detect_encoding("héllo".encode("utf-8"))[1] == "UTF-8"
    assert detect_encoding(b"\xff\xfeh\x00i\x00")[1] == "UTF-16"


def test_code_ceiling(tmp_path):
    f = tmp_path / "big.py"
    f.write_text("x = 1\n" * 100)
    assert read_code_metadata(f, "py", limit=10) is None
    assert read_code_metadata(f, "py").code_lines == 100


# --- Markdown ---

def test_markdown_yaml_frontmatter():
    section = parse_markdown("---\ntitle: Hello\n---\n# Hello\nSome words.")
    assert section.has_frontmatter is True
    assert section.frontmatter_format == "YAML"
    assert section.title == "Hello"
    assert section.heading_count == 1
    assert section.word_count >= 2


def test_markdown_code_fences_links_images():
    text = "\n".join([
        "# Guide",
        "See [docs](https://example.com) and ![logo](logo.png).",
        "```python",
        "# not a heading",
        "print('hi')",
        "```",
        "~~~",
        "more code",
        "~~~",
        "## Next",
    ])
    section = parse_markdown(text)

    assert section.has_frontmatter is False
    assert section.frontmatter_format is None
    assert section.title == "Guide"
    assert section.heading_count == 2
    assert section.code_block_count == 2
    # the image syntax also matches the link pattern
    assert section.link_count == 2
    assert section.image_count == 1


def test_markdown_json_frontmatter_closes_on_brace():
    section = parse_markdown('{\n"title": "x"\n}\nbody text here')
    assert section.frontmatter_format == "JSON"
    assert section.word_count == 3


def test_markdown_rejects_non_utf8(tmp_path):
    f = tmp_path / "latin.md"
    f.write_bytes("café".encode("latin-1"))
    assert read_markdown_metadata(f) is None


# --- Structured config ---

def test_json_keys_and_depth():
    section = parse_json_config('{"a":{"b":1},"c":[{"d":2}]}')
    assert section.is_valid is True
    assert section.key_count == 4
    assert section.max_depth == 2
    assert section.encoding == "UTF-8"


def test_json_invalid():
    section = parse_json_config("{nope")
    assert section.is_valid is False
    assert section.key_count is None


def test_yaml_heuristics():
    text = "# settings\nserver:\n  host: localhost\n  ports:\n    - 80\n"
    section = parse_yaml_config(text)
    assert section.key_count == 3
    assert section.max_depth == 3
    assert section.has_comments is True
    assert section.is_valid is True


def test_yaml_without_keys_is_invalid():
    assert parse_yaml_config("- a\n- b\n").is_valid is False


def test_toml_heuristics():
    text = "title = 'x'\n[server]\nhost = 'h'\n[server.tls.cert]\npath = 'p'\n"
    section = parse_toml_config(text)
    assert section.key_count == 3
    assert section.max_depth == 3
    assert section.has_comments is False
    assert section.is_valid is True


def test_config_reader_dispatches_on_extension(tmp_path):
    f = tmp_path / "app.yml"
    f.write_text("name: demo\n")
    assert read_config_metadata(f, "yml").format == "YAML"
    assert read_config_metadata(f, "ini") is None


# --- Subtitles ---

SRT = """1
00:00:01,000 --> 00:00:03,500
Hello <i>there</i>

2
00:01:02,000 --> 00:01:05,250
Bye
"""

VTT = """WEBVTT
Language: en

00:00.000 --> 00:02.000 align:start
<v Roger>Hi
"""

ASS = """[Script Info]
Title: demo

[Events]
Format: Layer, Start, End, Style, Text
Dialogue: 0,0:00:01.00,0:00:02.00,Default,Hi
Dialogue: 0,0:00:03.00,0:00:04.00,Default,Bye
"""


def test_srt():
    section = parse_subtitles(SRT, "srt")
    assert section.format == "SubRip"
    assert section.entry_count == 2
    assert section.duration == "00:01:05"
    assert section.has_formatting is True


def test_vtt():
    section = parse_subtitles(VTT, "vtt")
    assert section.entry_count == 1
    assert section.duration == "00:02"
    assert section.language == "en"
    assert section.has_formatting is True


def test_ass_counts_dialogue_in_events():
    section = parse_subtitles(ASS, "ass")
    assert section.entry_count == 2
    assert section.has_formatting is True


def test_subtitle_over_ceiling_reports_format_only(tmp_path):
    f = tmp_path / "big.srt"
    f.write_text(SRT)
    section = read_subtitle_metadata(f, "srt", limit=5)
    assert section.format == "SubRip"
    assert section.entry_count is None
    assert section.encoding is None


def test_subtitle_reader_adds_encoding(tmp_path):
    f = tmp_path / "movie.srt"
    f.write_text(SRT, encoding="utf-8")
    section = read_subtitle_metadata(f, "srt")
    assert section.encoding == "UTF-8"
    assert section.entry_count == 2
