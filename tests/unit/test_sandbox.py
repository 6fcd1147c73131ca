"""Unit tests for the extraction sandbox."""

import os
import stat
import sys
import zipfile

import pytest

from epub2txt.exceptions import ExtractionError, SandboxError, ZipFileSecurityError
from epub2txt.sandbox import Sandbox, ZipArchiveExtractor, normalize_permissions, resolve_temp_base


def make_zip(path, entries):
    with zipfile.ZipFile(path, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, content in entries.items():
            zf.writestr(name, content)
    return path


@pytest.mark.unit
class TestResolveTempBase:
    """Test temporary directory base selection."""

    @pytest.fixture(autouse=True)
    def _clear_env(self, monkeypatch):
        for name in ("EPUB2TXT_TMPDIR", "TMPDIR", "TMP", "TEMP"):
            monkeypatch.delenv(name, raising=False)

    def test_epub2txt_tmpdir_wins(self, monkeypatch):
        monkeypatch.setenv("EPUB2TXT_TMPDIR", "/first")
        monkeypatch.setenv("TMPDIR", "/second")
        assert resolve_temp_base() == "/first"

    def test_order_of_fallbacks(self, monkeypatch):
        monkeypatch.setenv("TMP", "/tmp-var")
        monkeypatch.setenv("TEMP", "/temp-var")
        assert resolve_temp_base() == "/tmp-var"

    def test_blank_values_ignored(self, monkeypatch):
        monkeypatch.setenv("EPUB2TXT_TMPDIR", "  ")
        monkeypatch.setenv("TEMP", "/temp-var")
        assert resolve_temp_base() == "/temp-var"

    def test_platform_default(self):
        assert resolve_temp_base()


@pytest.mark.unit
class TestSandboxLifecycle:
    """Test acquisition and release."""

    def test_acquire_creates_named_directory(self, temp_dir):
        sandbox = Sandbox(base_dir=temp_dir)

        root = sandbox.acquire()
        try:
            assert root.is_dir()
            assert root.parent == temp_dir
            assert root.name.startswith(f"epub2txt.{os.getpid()}.")
            assert sandbox.active
        finally:
            sandbox.release()

    def test_release_twice_is_safe(self, temp_dir):
        sandbox = Sandbox(base_dir=temp_dir)
        root = sandbox.acquire()

        sandbox.release()
        sandbox.release()

        assert not root.exists()
        assert not sandbox.active

    def test_release_without_acquire_is_noop(self, temp_dir):
        Sandbox(base_dir=temp_dir).release()
        assert list(temp_dir.iterdir()) == []

    def test_double_acquire_rejected(self, temp_dir):
        with Sandbox(base_dir=temp_dir) as sandbox:
            with pytest.raises(SandboxError, match="already acquired"):
                sandbox.acquire()

    def test_unusable_base_directory(self, temp_dir):
        with pytest.raises(SandboxError, match="Can't create temporary directory"):
            Sandbox(base_dir=temp_dir / "does" / "not" / "exist").acquire()

    def test_env_base_used(self, sandbox_base):
        with Sandbox() as sandbox:
            assert sandbox.root.parent == sandbox_base.resolve()

    def test_context_manager_releases_on_error(self, temp_dir):
        with pytest.raises(RuntimeError):
            with Sandbox(base_dir=temp_dir) as sandbox:
                root = sandbox.root
                raise RuntimeError("boom")

        assert not root.exists()
        assert list(temp_dir.iterdir()) == []

    def test_extract_requires_acquire(self, temp_dir):
        with pytest.raises(SandboxError, match="acquired before extraction"):
            Sandbox(base_dir=temp_dir).extract(temp_dir / "book.epub")


@pytest.mark.unit
class TestSandboxExtraction:
    """Test unpacking archives into the sandbox."""

    def test_extracts_nested_entries(self, temp_dir):
        archive = make_zip(temp_dir / "book.epub", {"mimetype": "application/epub+zip", "OEBPS/c1.xhtml": "<p/>"})
        base = temp_dir / "base"
        base.mkdir()

        with Sandbox(base_dir=base) as sandbox:
            root = sandbox.extract(archive)
            assert (root / "mimetype").read_text() == "application/epub+zip"
            assert (root / "OEBPS" / "c1.xhtml").is_file()

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
    def test_permissions_normalized(self, temp_dir):
        archive = make_zip(temp_dir / "book.epub", {"OEBPS/c1.xhtml": "<p/>"})
        base = temp_dir / "base"
        base.mkdir()

        with Sandbox(base_dir=base) as sandbox:
            root = sandbox.extract(archive)
            assert stat.S_IMODE(os.stat(root / "OEBPS").st_mode) == 0o755
            assert stat.S_IMODE(os.stat(root / "OEBPS" / "c1.xhtml").st_mode) == 0o644

    def test_zip_slip_rejected_and_nothing_written(self, temp_dir):
        archive = temp_dir / "slip.epub"
        make_zip(archive, {"ok.txt": "fine", zipfile.ZipInfo("../../evil.txt"): "owned"})
        base = temp_dir / "base"
        base.mkdir()

        with Sandbox(base_dir=base) as sandbox:
            with pytest.raises(ZipFileSecurityError):
                sandbox.extract(archive)
            assert not (sandbox.root / "ok.txt").exists()

        assert not (temp_dir / "evil.txt").exists()
        assert list(base.iterdir()) == []

    def test_not_a_zip(self, temp_dir):
        archive = temp_dir / "book.epub"
        archive.write_bytes(b"plain text, not a zip")

        with Sandbox(base_dir=temp_dir) as sandbox:
            with pytest.raises(ExtractionError):
                sandbox.extract(archive)

    def test_extractor_limits_applied(self, temp_dir):
        archive = make_zip(temp_dir / "book.epub", {f"f{i}.txt": "x" for i in range(5)})
        extractor = ZipArchiveExtractor(max_entries=3)

        with pytest.raises(ZipFileSecurityError, match="too many entries"):
            extractor.extract(archive, temp_dir)

    def test_custom_extractor_is_used(self, temp_dir):
        calls = []

        class RecordingExtractor:
            def extract(self, archive_path, target_dir):
                calls.append((archive_path, target_dir))
                (target_dir / "marker").write_text("x")

        with Sandbox(base_dir=temp_dir, extractor=RecordingExtractor()) as sandbox:
            sandbox.extract(temp_dir / "anything.epub")
            assert (sandbox.root / "marker").exists()

        assert len(calls) == 1


@pytest.mark.unit
@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks not supported")
def test_normalize_permissions_leaves_symlink_targets_alone(temp_dir):
    outside = temp_dir / "outside.txt"
    outside.write_text("x")
    os.chmod(outside, 0o600)
    root = temp_dir / "root"
    root.mkdir()
    (root / "link").symlink_to(outside)

    normalize_permissions(root)

    assert stat.S_IMODE(os.stat(outside).st_mode) == 0o600
