import plistlib

import pytest

from conftest import FakeRunner
from file_inspector.config import InspectorSettings
from file_inspector.metadata.external import (AppBundleInspector, ArchiveInspector,
                                              CodeSigningInspector, DiskImageInspector,
                                              ExecutableInspector, GitInspector,
                                              compression_ratio, parse_file_probe,
                                              parse_hdiutil_imageinfo, parse_load_commands,
                                              parse_zipinfo_summary)

SETTINGS = InspectorSettings()


# --- Archives ---

def test_zipinfo_summary():
    out = "Archive:  a.zip\n...\n3 files, 1024 bytes uncompressed, 512 bytes compressed:  50.0%\n"
    assert parse_zipinfo_summary(out) == (3, 1024)
    assert parse_zipinfo_summary("garbage") == (None, None)


def test_compression_ratio():
    assert compression_ratio(512, 1024) == pytest.approx(50.0)
    assert compression_ratio(512, 0) is None
    assert compression_ratio(None, 10) is None


def test_zip_archive(tmp_path):
    archive = tmp_path / "a.zip"
    archive.write_bytes(b"\x00" * 512)

    runner = FakeRunner()
    runner.add(["zipinfo", "-t"], stdout="3 files, 1024 bytes uncompressed, 512 bytes compressed:  50.0%\n")
    runner.add(["unzip", "-Z", "-1"], stdout="a\nb\nc\n")

    section = ArchiveInspector(runner, SETTINGS).read(archive, "zip")

    assert section.format == "ZIP"
    assert section.file_count == 3
    assert section.uncompressed_size == 1024
    assert section.compression_ratio == pytest.approx(50.0)
    assert section.is_encrypted is False
    assert section.comment is None
    assert all(timeout == SETTINGS.archive_timeout for _argv, timeout in runner.calls)


def test_zip_encrypted_probe(tmp_path):
    archive = tmp_path / "secret.zip"
    archive.write_bytes(b"\x00" * 10)

    runner = FakeRunner()
    runner.add(["unzip", "-Z", "-1"], stderr="skipping: x  unable to get password", returncode=1)

    section = ArchiveInspector(runner, SETTINGS).read(archive, "zip")
    assert section.is_encrypted is True
    assert section.file_count is None


def test_zip_tools_missing(tmp_path):
    archive = tmp_path / "a.zip"
    archive.write_bytes(b"\x00" * 10)
    section = ArchiveInspector(FakeRunner(), SETTINGS).read(archive, "zip")
    assert section.format == "ZIP"
    assert section.is_encrypted is None
    assert section.file_count is None


def test_tar_counts_files_not_dirs(tmp_path):
    archive = tmp_path / "src.tar.gz"
    archive.write_bytes(b"\x1f\x8b")

    runner = FakeRunner()
    runner.add(["tar", "-t", "-z", "-f"], stdout="src/\nsrc/a.py\nsrc/b.py\nsrc/sub/\n")

    section = ArchiveInspector(runner, SETTINGS).read(archive, "tar.gz")
    assert section.format == "TAR.GZ"
    assert section.file_count == 2
    assert runner.calls[0][0] == ["tar", "-t", "-z", "-f", str(archive)]


def test_other_archive_is_format_only(tmp_path):
    archive = tmp_path / "x.7z"
    archive.write_bytes(b"7z")
    runner = FakeRunner()
    section = ArchiveInspector(runner, SETTINGS).read(archive, "7z")
    assert section.format == "7-Zip"
    assert runner.calls == []


# --- Disk images ---

HDIUTIL = """Format: UDZO
Partition Information:
    partition-scheme: GUID
Checksum Type: CRC32
Size Information:
    Total Bytes: 10485760
    Compressed Bytes: 4194304
Class Name: Apple_HFS
"""


def test_hdiutil_imageinfo():
    section = parse_hdiutil_imageinfo(HDIUTIL)
    assert section.format == "UDZO"
    assert section.total_size == 10485760
    assert section.compressed_size == 4194304
    assert section.compression_ratio == "2.5:1"
    assert section.is_encrypted is False
    assert section.partition_scheme == "GPT"
    assert section.file_system == "HFS+"


def test_hdiutil_falls_back_to_on_disk_size():
    section = parse_hdiutil_imageinfo("Format: UDRO\nTotal Bytes: 2000\nEncrypted: true\n", on_disk_size=1000)
    assert section.compressed_size == 1000
    assert section.compression_ratio == "2.0:1"
    assert section.is_encrypted is True


def test_disk_image_tool_failure(tmp_path):
    dmg = tmp_path / "x.dmg"
    dmg.write_bytes(b"\x00")
    runner = FakeRunner()
    runner.add(["hdiutil", "imageinfo"], returncode=1)
    assert DiskImageInspector(runner, SETTINGS).read(dmg) is None


# --- Executables ---

def test_file_probe_variants():
    assert parse_file_probe("Mach-O universal binary with 2 architectures: [x86_64] [arm64]") == \
        ("Universal", "Mach-O Executable")
    assert parse_file_probe("Mach-O 64-bit dynamically linked shared library arm64") == \
        ("arm64", "Dynamic Library")
    assert parse_file_probe("Mach-O 64-bit bundle x86_64") == ("x86_64", "Mach-O Bundle")
    assert parse_file_probe("ELF 64-bit LSB executable, x86-64, version 1 (SYSV)") == \
        ("x86_64", "ELF Executable")
    assert parse_file_probe("ASCII text") == (None, None)


def test_file_type_prefers_executable_over_shared_object():
    assert parse_file_probe("ELF 64-bit LSB pie executable, x86-64, version 1 (SYSV), dynamically linked, "
                            "interpreter /lib64/ld-linux-x86-64.so.2") == ("x86_64", "ELF Executable")
    assert parse_file_probe("ELF 64-bit LSB shared object, x86-64, version 1 (SYSV), dynamically linked, "
                            "interpreter /lib64/ld-linux-x86-64.so.2, stripped") == ("x86_64", "ELF Executable")
    assert parse_file_probe("ELF 64-bit LSB shared object, ARM aarch64, version 1 (SYSV), dynamically linked, "
                            "stripped") == ("arm64", "Dynamic Library")
    assert parse_file_probe("PE32+ executable (DLL) (console) x86-64, for MS Windows") == \
        ("x86_64", "Dynamic Library")
    assert parse_file_probe("Mach-O 64-bit executable arm64") == ("arm64", "Mach-O Executable")


def test_load_commands():
    out = "Load command 9\n      cmd LC_BUILD_VERSION\n  platform 1\n    minos 14.0\n      sdk 17.2\n"
    assert parse_load_commands(out) == ("14.0", "17.2")
    legacy = "      cmd LC_VERSION_MIN_MACOSX\n  cmdsize 16\n  version 10.13\n      sdk 10.15\n"
    assert parse_load_commands(legacy) == ("10.13", "10.15")


def test_executable_inspector(tmp_path):
    binary = tmp_path / "tool"
    binary.write_bytes(b"\xcf\xfa\xed\xfe")
    runner = FakeRunner()
    runner.add(["file", "-b"], stdout="Mach-O 64-bit executable arm64\n")
    runner.add(["codesign", "-dv"], stderr="Executable=/x\nAuthority=Developer ID Application: Acme\nAuthority=Apple Root CA\n")
    runner.add(["otool", "-l"], stdout="    minos 13.0\n      sdk 14.0\n")

    signing = CodeSigningInspector(runner, SETTINGS)
    section = ExecutableInspector(runner, SETTINGS, signing).read(binary)

    assert section.architecture == "arm64"
    assert section.file_type == "Mach-O Executable"
    assert section.is_code_signed is True
    assert section.signing_authority == "Developer ID Application: Acme"
    assert section.minimum_os == "13.0"
    assert section.sdk_version == "14.0"
    assert all(timeout == SETTINGS.quick_timeout for _argv, timeout in runner.calls)


def test_unsigned_and_missing_codesign(tmp_path):
    binary = tmp_path / "tool"
    binary.write_bytes(b"")

    runner = FakeRunner()
    runner.add(["codesign", "-dv"], stderr="tool: code object is not signed at all", returncode=1)
    assert CodeSigningInspector(runner, SETTINGS).signature(binary) == (False, None)

    assert CodeSigningInspector(FakeRunner(), SETTINGS).signature(binary) == (None, None)


def test_executable_rejects_non_native(tmp_path):
    f = tmp_path / "notes"
    f.write_text("hi")
    runner = FakeRunner()
    runner.add(["file", "-b"], stdout="ASCII text\n")
    signing = CodeSigningInspector(runner, SETTINGS)
    assert ExecutableInspector(runner, SETTINGS, signing).read(f) is None


# --- App bundles ---

def test_app_bundle(tmp_path):
    app = tmp_path / "Tool.app"
    (app / "Contents").mkdir(parents=True)
    with (app / "Contents" / "Info.plist").open("wb") as f:
        plistlib.dump({
            "CFBundleIdentifier": "com.acme.tool",
            "CFBundleShortVersionString": "1.2",
            "CFBundleVersion": "45",
            "LSMinimumSystemVersion": "12.0",
            "LSApplicationCategoryType": "public.app-category.utilities",
            "NSHumanReadableCopyright": "© Acme",
        }, f)

    runner = FakeRunner()
    runner.add(["codesign", "-dv"], stderr="Authority=Acme\n")
    runner.add(["codesign", "-d", "--entitlements", "-"], stdout="<?xml?>" + "x" * 200)

    section = AppBundleInspector(CodeSigningInspector(runner, SETTINGS)).read(app)
    assert section.bundle_id == "com.acme.tool"
    assert section.version == "1.2"
    assert section.build_number == "45"
    assert section.minimum_os == "12.0"
    assert section.is_code_signed is True
    assert section.has_entitlements is True


def test_small_entitlements_payload(tmp_path):
    runner = FakeRunner()
    runner.add(["codesign", "-d", "--entitlements", "-"], stdout="<dict/>")
    assert CodeSigningInspector(runner, SETTINGS).has_entitlements(tmp_path) is False


# --- Git ---

def test_git_queries(tmp_path):
    repo = tmp_path / "repo"
    (repo / ".git").mkdir(parents=True)
    base = ["git", "-C", str(repo)]

    runner = FakeRunner()
    runner.add(base + ["branch", "--show-current"], stdout="main\n")
    runner.add(base + ["branch", "-a"], stdout="* main\n  dev\n  remotes/origin/main\n")
    runner.add(base + ["rev-list", "--count", "HEAD"], stdout="42\n")
    runner.add(base + ["log", "-1", "--format=%ci|%s"], stdout="2024-01-02 10:00:00 +0000|Fix: a|b\n")
    runner.add(base + ["remote", "get-url", "origin"], stdout="git@example.com:a/b.git\n")
    runner.add(base + ["status", "--porcelain"], stdout=" M file.py\n")
    runner.add(base + ["tag"], stdout="v1\nv2\n")

    section = GitInspector(runner, SETTINGS).read(repo)

    assert section.current_branch == "main"
    assert section.branch_count == 3
    assert section.commit_count == 42
    assert section.last_commit_date == "2024-01-02 10:00:00 +0000"
    assert section.last_commit_message == "Fix: a|b"
    assert section.remote_url == "git@example.com:a/b.git"
    assert section.has_uncommitted_changes is True
    assert section.tag_count == 2
    assert len(runner.calls) == 7


def test_git_partial_failure(tmp_path):
    repo = tmp_path / "repo"
    (repo / ".git").mkdir(parents=True)
    runner = FakeRunner()
    runner.add(["git", "-C", str(repo), "branch", "--show-current"], stdout="main\n")
    runner.add(["git", "-C", str(repo), "status", "--porcelain"], stdout="")

    section = GitInspector(runner, SETTINGS).read(repo)
    assert section.current_branch == "main"
    assert section.has_uncommitted_changes is False
    assert section.remote_url is None
    assert section.commit_count is None


def test_git_takes_first_line_of_branch_and_remote(tmp_path):
    repo = tmp_path / "repo"
    (repo / ".git").mkdir(parents=True)
    base = ["git", "-C", str(repo)]
    runner = FakeRunner()
    runner.add(base + ["branch", "--show-current"], stdout="\nfeature/x\nwarning: ignored\n")
    runner.add(base + ["remote", "get-url", "origin"],
               stdout="https://example.com/a.git\nhttps://mirror.example.com/a.git\n")

    section = GitInspector(runner, SETTINGS).read(repo)
    assert section.current_branch == "feature/x"
    assert section.remote_url == "https://example.com/a.git"
