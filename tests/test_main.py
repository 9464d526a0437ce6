import json

import pytest

import file_inspector.main as main_module
from conftest import FakeDocumentProvider, FakeFontProvider, FakeImageProvider, FakeMediaProvider, FakeRunner
from file_inspector.core import FileInspector


@pytest.fixture(autouse=True)
def fake_inspector(monkeypatch):
    """The CLI builds its own FileInspector; swap in one wired to fakes."""
    def _build():
        return FileInspector(
            runner=FakeRunner(),
            image_provider=FakeImageProvider(),
            media_provider=FakeMediaProvider(),
            document_provider=FakeDocumentProvider(),
            font_provider=FakeFontProvider(),
        )
    monkeypatch.setattr(main_module, "FileInspector", _build)
    monkeypatch.setattr(main_module, "setup_logging", lambda verbose, log_file=None: None)


def test_parse_args_defaults(tmp_path):
    args = main_module.parse_args([str(tmp_path)])
    assert args.paths == [tmp_path]
    assert args.recursive is False
    assert args.verbose is False
    assert args.output is None


def test_single_path_prints_object(tmp_path, capsys):
    f = tmp_path / "notes.md"
    f.write_text("# Notes\nSome text here\n")

    main_module.main([str(f)])

    data = json.loads(capsys.readouterr().out)
    assert data["name"] == "notes.md"
    assert data["sections"]["markdown"]["title"] == "Notes"


def test_recursive_output_file(tmp_path):
    src = tmp_path / "src"
    src.mkdir()
    (src / "a.py").write_text("x = 1\n")
    (src / "b.json").write_text("{}")
    out = tmp_path / "out.json"

    main_module.main([str(src), "--recursive", "--output", str(out)])

    records = json.loads(out.read_text(encoding="utf-8"))
    names = [r["name"] for r in records]
    assert names == ["src", "a.py", "b.json"]


def test_missing_path_exits_nonzero(tmp_path, capsys):
    with pytest.raises(SystemExit) as exc:
        main_module.main([str(tmp_path / "missing.txt")])
    assert exc.value.code == 1
    assert json.loads(capsys.readouterr().out) == []


def test_collect_paths_non_recursive(tmp_path):
    assert main_module.collect_paths([tmp_path], recursive=False) == [tmp_path]
