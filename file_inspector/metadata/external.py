"""
Extractors that shell out to local tools. Every invocation goes through the
injected CommandRunner so it is bounded by the timeout guard; any tool
failure leaves the affected fields unset instead of raising.
"""
import logging
import plistlib
import re
import zipfile
from pathlib import Path
from typing import Optional, Tuple

from .. import config
from ..config import InspectorSettings
from ..models import (AppBundleSection, ArchiveSection, DiskImageSection,
                      ExecutableSection, GitSection)
from ..process.runner import CommandRunner

_ZIPINFO_SUMMARY_RE = re.compile(r'(\d+)\s+files?,\s+(\d+)\s+bytes uncompressed')
_AUTHORITY_RE = re.compile(r'Authority=([^\n]+)')
_MINOS_RE = re.compile(r'minos\s+([\d.]+)')
_SDK_RE = re.compile(r'sdk\s+([\d.]+)')
_LC_VERSION_MIN_RE = re.compile(r'cmd LC_VERSION_MIN_\w+.*?\n\s*version\s+([\d.]+)\n\s*sdk\s+([\d.]+)', re.DOTALL)

# Substring in `hdiutil imageinfo` output -> reported file system
_FILE_SYSTEMS = [
    ('APFS', 'APFS'),
    ('HFS', 'HFS+'),
    ('ISO 9660', 'ISO 9660'),
    ('ISO9660', 'ISO 9660'),
    ('FAT32', 'FAT32'),
    ('MS-DOS', 'FAT32'),
]

_PARTITION_SCHEMES = [
    ('GUID', 'GPT'),
    ('GPT', 'GPT'),
    ('Apple', 'APM'),
    ('MBR', 'MBR'),
    ('Master Boot Record', 'MBR'),
]


def compression_ratio(compressed: Optional[int], uncompressed: Optional[int]) -> Optional[float]:
    """Percent saved: (1 - compressed / uncompressed) * 100."""
    if compressed is None or not uncompressed:
        return None
    return (1 - compressed / uncompressed) * 100


def parse_zipinfo_summary(output: str) -> Tuple[Optional[int], Optional[int]]:
    """
    Parses the trailer of `zipinfo -t`:
    "<n> files, <m> bytes uncompressed, <k> bytes compressed: x%"

    Returns:
        (file_count, uncompressed_size)
    """
    m = _ZIPINFO_SUMMARY_RE.search(output)
    if not m:
        return None, None
    return int(m.group(1)), int(m.group(2))


class ArchiveInspector:
    def __init__(self, runner: CommandRunner, settings: InspectorSettings):
        self.runner = runner
        self.settings = settings

    def read(self, path: Path, ext: str) -> Optional[ArchiveSection]:
        """
        Lists zip and tar archives through zipinfo/unzip/tar.

        Other archive types only get their format name.
        """
        fmt = config.ARCHIVE_FORMAT_NAMES.get(ext, ext.upper())

        if ext in config.ZIP_ARCHIVE_EXTS:
            return self._read_zip(path, fmt)
        if ext in config.TAR_ARCHIVE_EXTS:
            return self._read_tar(path, ext, fmt)
        return ArchiveSection(format=fmt)

    def _read_zip(self, path: Path, fmt: str) -> ArchiveSection:
        file_count = uncompressed = None
        result = self.runner.run(['zipinfo', '-t', str(path)], self.settings.archive_timeout)
        if result.ok:
            file_count, uncompressed = parse_zipinfo_summary(result.stdout)

        is_encrypted = None
        probe = self.runner.run(['unzip', '-Z', '-1', str(path)], self.settings.archive_timeout)
        if probe.launched and not probe.timed_out:
            if probe.ok:
                is_encrypted = False
            else:
                err = (probe.stderr + probe.stdout).lower()
                is_encrypted = 'password' in err or 'encrypted' in err

        return ArchiveSection(
            format=fmt,
            file_count=file_count,
            uncompressed_size=uncompressed,
            compression_ratio=compression_ratio(path.stat().st_size, uncompressed),
            is_encrypted=is_encrypted,
            comment=self._zip_comment(path),
        )

    def _zip_comment(self, path: Path) -> Optional[str]:
        try:
            with zipfile.ZipFile(path) as zf:
                raw = zf.comment
        except (zipfile.BadZipFile, OSError) as e:
            logging.debug(f"Could not read zip comment from {path}: {e}")
            return None
        comment = raw.decode('utf-8', errors='replace').strip()
        return comment or None

    def _read_tar(self, path: Path, ext: str, fmt: str) -> ArchiveSection:
        argv = ['tar', '-t']
        flag = config.TAR_DECOMPRESSION_FLAGS.get(ext)
        if flag:
            argv.append(flag)
        argv += ['-f', str(path)]

        file_count = None
        result = self.runner.run(argv, self.settings.archive_timeout)
        if result.ok:
            file_count = sum(1 for line in result.stdout.splitlines() if line and not line.endswith('/'))

        return ArchiveSection(format=fmt, file_count=file_count)


def _field(output: str, label: str) -> Optional[str]:
    m = re.search(rf'^\s*{re.escape(label)}:\s*(.+?)\s*$', output, re.MULTILINE)
    return m.group(1) if m else None


def _int_field(output: str, label: str) -> Optional[int]:
    value = _field(output, label)
    if value is None:
        return None
    m = re.match(r'\d+', value)
    return int(m.group(0)) if m else None


def parse_hdiutil_imageinfo(output: str, on_disk_size: Optional[int] = None) -> DiskImageSection:
    total = _int_field(output, 'Total Bytes')
    compressed = _int_field(output, 'Compressed Bytes')
    if compressed is None:
        compressed = on_disk_size

    ratio = None
    if total and compressed:
        ratio = f"{total / compressed:.1f}:1"

    encrypted = False
    enc_value = _field(output, 'Encrypted')
    if enc_value is not None:
        encrypted = enc_value.strip().lower() in ('true', 'yes', '1')

    scheme = None
    scheme_value = _field(output, 'partition-scheme') or _field(output, 'Partition Scheme')
    if scheme_value:
        scheme = next((name for key, name in _PARTITION_SCHEMES if key in scheme_value), scheme_value)

    fs = None
    for key, name in _FILE_SYSTEMS:
        if key in output:
            fs = name
            break

    return DiskImageSection(
        format=_field(output, 'Format'),
        total_size=total,
        compressed_size=compressed,
        compression_ratio=ratio,
        is_encrypted=encrypted,
        partition_scheme=scheme,
        file_system=fs,
    )


class DiskImageInspector:
    def __init__(self, runner: CommandRunner, settings: InspectorSettings):
        self.runner = runner
        self.settings = settings

    def read(self, path: Path) -> Optional[DiskImageSection]:
        result = self.runner.run(['hdiutil', 'imageinfo', str(path)], self.settings.archive_timeout)
        if not result.ok:
            return None
        on_disk = path.stat().st_size if path.is_file() else None
        return parse_hdiutil_imageinfo(result.stdout, on_disk)


class CodeSigningInspector:
    """Shared `codesign` probes for executables and app bundles."""

    def __init__(self, runner: CommandRunner, settings: InspectorSettings):
        self.runner = runner
        self.settings = settings

    def signature(self, path: Path) -> Tuple[Optional[bool], Optional[str]]:
        """
        Returns:
            (is_signed, authority). Both None when codesign is unavailable.
        """
        result = self.runner.run(['codesign', '-dv', str(path)], self.settings.quick_timeout)
        if not result.launched or result.timed_out:
            return None, None

        # codesign writes its details to stderr
        output = result.stderr + result.stdout
        signed = result.ok and 'not signed' not in output
        authority = None
        m = _AUTHORITY_RE.search(output)
        if m:
            authority = m.group(1).strip()
        return signed, authority

    def has_entitlements(self, path: Path) -> Optional[bool]:
        result = self.runner.run(['codesign', '-d', '--entitlements', '-', str(path)], self.settings.quick_timeout)
        if not result.ok:
            return None
        payload = result.stdout.encode('utf-8')
        return len(payload) > config.ENTITLEMENTS_MIN_BYTES


def parse_file_probe(output: str) -> Tuple[Optional[str], Optional[str]]:
    """
    Derives (architecture, file_type) from `file -b` output.
    Only Mach-O, ELF and PE binaries are recognised.
    """
    if 'Mach-O' in output:
        family = 'Mach-O'
    elif 'ELF' in output:
        family = 'ELF'
    elif 'PE32' in output:
        family = 'PE'
    else:
        return None, None

    if 'universal' in output or 'fat' in output.split():
        arch = 'Universal'
    elif 'arm64' in output or 'aarch64' in output:
        arch = 'arm64'
    elif 'x86_64' in output or 'x86-64' in output:
        arch = 'x86_64'
    else:
        arch = None

    if '(DLL)' in output:
        file_type = 'Dynamic Library'
    elif 'executable' in output or ('shared object' in output and 'interpreter' in output):
        # PIE binaries from older `file` builds read as shared objects with an interpreter
        file_type = f"{family} Executable"
    elif 'dynamically linked shared library' in output or 'shared object' in output:
        file_type = 'Dynamic Library'
    elif 'bundle' in output:
        file_type = f"{family} Bundle"
    else:
        file_type = f"{family} Executable"
    return arch, file_type


def parse_load_commands(output: str) -> Tuple[Optional[str], Optional[str]]:
    """Returns (minimum_os, sdk_version) from `otool -l` output."""
    minos = _MINOS_RE.search(output)
    sdk = _SDK_RE.search(output)
    if minos:
        return minos.group(1), sdk.group(1) if sdk else None
    legacy = _LC_VERSION_MIN_RE.search(output)
    if legacy:
        return legacy.group(1), legacy.group(2)
    return None, sdk.group(1) if sdk else None


class ExecutableInspector:
    def __init__(self, runner: CommandRunner, settings: InspectorSettings, signing: CodeSigningInspector):
        self.runner = runner
        self.settings = settings
        self.signing = signing

    def read(self, path: Path) -> Optional[ExecutableSection]:
        probe = self.runner.run(['file', '-b', str(path)], self.settings.quick_timeout)
        if not probe.ok:
            return None
        arch, file_type = parse_file_probe(probe.stdout.strip())
        if file_type is None:
            logging.debug(f"Not a recognised native binary: {path}")
            return None

        signed, authority = self.signing.signature(path)

        minimum_os = sdk = None
        load_cmds = self.runner.run(['otool', '-l', str(path)], self.settings.quick_timeout)
        if load_cmds.ok:
            minimum_os, sdk = parse_load_commands(load_cmds.stdout)

        return ExecutableSection(
            architecture=arch,
            is_code_signed=signed,
            signing_authority=authority,
            minimum_os=minimum_os,
            sdk_version=sdk,
            file_type=file_type,
        )


class AppBundleInspector:
    def __init__(self, signing: CodeSigningInspector):
        self.signing = signing

    def read(self, path: Path) -> Optional[AppBundleSection]:
        plist_path = path / 'Contents' / 'Info.plist'
        info = {}
        try:
            with plist_path.open('rb') as f:
                info = plistlib.load(f)
        except (OSError, plistlib.InvalidFileException, ValueError) as e:
            logging.warning(f"Could not read Info.plist in {path}: {e}")

        def _str(key):
            value = info.get(key)
            return str(value) if value is not None else None

        signed, _authority = self.signing.signature(path)
        return AppBundleSection(
            bundle_id=_str('CFBundleIdentifier'),
            version=_str('CFBundleShortVersionString'),
            build_number=_str('CFBundleVersion'),
            minimum_os=_str('LSMinimumSystemVersion'),
            category=_str('LSApplicationCategoryType'),
            copyright=_str('NSHumanReadableCopyright'),
            is_code_signed=signed,
            has_entitlements=self.signing.has_entitlements(path),
        )


def _first_line(output: Optional[str]) -> Optional[str]:
    if output is None:
        return None
    lines = output.strip().splitlines()
    return lines[0].strip() if lines else None


class GitInspector:
    """Seven independent `git -C <path>` queries against a working tree."""

    def __init__(self, runner: CommandRunner, settings: InspectorSettings):
        self.runner = runner
        self.settings = settings

    def _git(self, path: Path, *args: str) -> Optional[str]:
        result = self.runner.run(['git', '-C', str(path), *args], self.settings.quick_timeout)
        return result.stdout if result.ok else None

    def read(self, path: Path) -> Optional[GitSection]:
        if not (path / '.git').exists():
            return None

        current = self._git(path, 'branch', '--show-current')
        branches = self._git(path, 'branch', '-a')
        commits = self._git(path, 'rev-list', '--count', 'HEAD')
        last = self._git(path, 'log', '-1', '--format=%ci|%s')
        remote = self._git(path, 'remote', 'get-url', 'origin')
        status = self._git(path, 'status', '--porcelain')
        tags = self._git(path, 'tag')

        commit_count = None
        if commits is not None and commits.strip().isdigit():
            commit_count = int(commits.strip())

        last_date = last_message = None
        if last and last.strip():
            parts = last.strip().split('|', 1)
            last_date = parts[0] or None
            if len(parts) == 2:
                last_message = parts[1] or None

        return GitSection(
            branch_count=len([b for b in branches.splitlines() if b.strip()]) if branches is not None else None,
            current_branch=_first_line(current),
            commit_count=commit_count,
            last_commit_date=last_date,
            last_commit_message=last_message,
            remote_url=_first_line(remote),
            has_uncommitted_changes=bool(status.strip()) if status is not None else None,
            tag_count=len([t for t in tags.splitlines() if t.strip()]) if tags is not None else None,
        )
