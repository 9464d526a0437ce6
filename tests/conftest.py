import pytest
from pathlib import Path

from file_inspector.config import InspectorSettings
from file_inspector.core import FileInspector
from file_inspector.process.runner import CommandResult


class FakeRunner:
    """
    Stands in for CommandRunner: returns canned results keyed by an argv
    prefix and records every call. Unknown commands behave like a missing tool.
    """

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.calls = []

    def add(self, prefix, stdout="", stderr="", returncode=0, timed_out=False):
        self.responses[tuple(prefix)] = CommandResult(
            ok=returncode == 0 and not timed_out,
            returncode=None if timed_out else returncode,
            stdout=stdout,
            stderr=stderr,
            timed_out=timed_out,
        )

    def run(self, argv, timeout):
        self.calls.append((list(argv), timeout))
        best = None
        for prefix, result in self.responses.items():
            if tuple(argv[:len(prefix)]) == prefix and (best is None or len(prefix) > len(best[0])):
                best = (prefix, result)
        return best[1] if best else CommandResult.not_launched()


class FakeImageProvider:
    def __init__(self, bag=None):
        self.bag = bag

    def read(self, path):
        return self.bag


class FakeMediaProvider:
    def __init__(self, bag=None):
        self.bag = bag

    def read(self, path):
        return self.bag


class FakeDocumentProvider:
    def __init__(self, pdf=None, content=None, office=None):
        self.pdf = pdf
        self.content = content
        self.office = office
        self.content_requests = 0

    def read_pdf(self, path):
        return self.pdf

    def read_pdf_page_content(self, path, index):
        self.content_requests += 1
        return self.content

    def read_office(self, path):
        return self.office


class FakeFontProvider:
    def __init__(self, bag=None):
        self.bag = bag

    def read(self, path):
        return self.bag


class ExplodingProvider:
    """Every read raises, to check the dispatcher isolates extractor failures."""

    def read(self, path):
        raise RuntimeError("provider crashed")

    read_pdf = read
    read_office = read

    def read_pdf_page_content(self, path, index):
        raise RuntimeError("provider crashed")


@pytest.fixture
def settings():
    return InspectorSettings()


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def make_inspector(settings, runner):
    """Builds a FileInspector wired to fakes; keyword args override providers."""
    def _make(**overrides):
        kwargs = dict(
            settings=settings,
            runner=runner,
            image_provider=FakeImageProvider(),
            media_provider=FakeMediaProvider(),
            document_provider=FakeDocumentProvider(),
            font_provider=FakeFontProvider(),
        )
        kwargs.update(overrides)
        return FileInspector(**kwargs)
    return _make


@pytest.fixture
def inspector(make_inspector):
    return make_inspector()


def write_psd_header(path: Path, channels=4, height=100, width=200, depth=8, mode=3, version=1):
    import struct
    header = struct.pack(">4sH6sHIIHH", b"8BPS", version, b"\x00" * 6, channels, height, width, depth, mode)
    path.write_bytes(header + b"\x00" * 64)
    return path
