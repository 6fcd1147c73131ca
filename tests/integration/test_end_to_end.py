"""Integration tests: generated EPUB archives through the whole pipeline.

Test Coverage:
- Reading order and rendering of well-formed books
- Books written by a real EPUB writer (ebooklib)
- Hostile archives (zip-slip entries, zip bombs, escaping rootfile and hrefs)
- Sandbox cleanup on success and on every failure path
"""

import io
import logging

import pytest
from fixtures.generators.epub_fixtures import (
    build_epub,
    create_ebooklib_epub,
    create_epub_with_encoded_hrefs,
    create_epub_with_root_opf,
    create_epub_with_sibling_prefix_href,
    create_epub_with_traversal_href,
    create_epub_with_traversal_rootfile,
    create_simple_epub,
    create_zip_bomb_epub,
    create_zip_slip_epub,
    write_epub,
    xhtml_page,
)

from epub2txt import ConversionOptions, EpubConverter, convert
from epub2txt.exceptions import (
    ExtractionError,
    MalformedContainerError,
    PathTraversalError,
    ZipFileSecurityError,
)


@pytest.mark.integration
class TestWellFormedBooks:
    """Conversions that should succeed completely."""

    def test_full_book_with_metadata_and_separator(self, temp_dir, sandbox_base):
        path = write_epub(temp_dir, create_simple_epub())
        options = ConversionOptions(meta=True, section_separator="* * *")

        text = convert(path, options)

        assert text == (
            "Title: Test EPUB Document\n"
            "Creator: Jane & Doe\n"
            "Date: 2019\n"
            "Language: en\n"
            "\n"
            "* * *\n"
            "Chapter Two\n\nSecond chapter text.\n\n"
            "* * *\n"
            "Chapter One\n\nFirst chapter text.\n\n"
        )
        assert list(sandbox_base.iterdir()) == []

    def test_opf_at_archive_root(self, temp_dir, sandbox_base):
        path = write_epub(temp_dir, create_epub_with_root_opf())
        assert convert(path) == "Root level\n\n"

    def test_percent_encoded_href(self, temp_dir, sandbox_base):
        path = write_epub(temp_dir, create_epub_with_encoded_hrefs())
        assert convert(path) == "Spaced name\n\n"

    def test_wrapped_ascii_output(self, temp_dir, sandbox_base):
        body = "<p>“Déjà vu” — the feeling of having already experienced the present situation.</p>"
        opf = (
            '<package xmlns="http://www.idpf.org/2007/opf"><manifest>'
            '<item id="a" href="c1.xhtml" media-type="application/xhtml+xml"/></manifest>'
            '<spine><itemref idref="a"/></spine></package>'
        )
        path = write_epub(temp_dir, build_epub({"OEBPS/content.opf": opf, "OEBPS/c1.xhtml": xhtml_page("x", body)}))

        text = convert(path, max_line_width=30, ascii_only=True)

        assert text == '"Deja vu" -- the feeling of\nhaving already experienced the\npresent situation.\n\n'

    def test_ebooklib_generated_book(self, temp_dir, sandbox_base):
        pytest.importorskip("ebooklib")
        path = write_epub(temp_dir, create_ebooklib_epub())

        text = convert(path, meta=True)

        assert "Title: Test EPUB Document" in text
        assert "Creator: Test Author" in text
        assert text.index("Chapter 1: Introduction") < text.index("Chapter 2: Content")
        assert "Item 2" in text


@pytest.mark.integration
@pytest.mark.security
class TestHostileArchives:
    """Archives crafted to escape the sandbox or exhaust resources."""

    @pytest.mark.parametrize("entry_name", ["../../evil.txt", "/tmp/evil.txt", "OEBPS/../../evil.txt"])
    def test_zip_slip_entry(self, temp_dir, sandbox_base, entry_name):
        path = write_epub(temp_dir, create_zip_slip_epub(entry_name))

        with pytest.raises(ZipFileSecurityError):
            convert(path)

        assert not (temp_dir / "evil.txt").exists()
        assert list(sandbox_base.iterdir()) == []

    def test_zip_bomb(self, temp_dir, sandbox_base):
        path = write_epub(temp_dir, create_zip_bomb_epub())

        with pytest.raises(ZipFileSecurityError, match="compression ratio"):
            convert(path)
        assert list(sandbox_base.iterdir()) == []

    def test_zip_bomb_allowed_with_raised_limit(self, temp_dir, sandbox_base):
        path = write_epub(temp_dir, create_zip_bomb_epub())
        assert convert(path, max_compression_ratio=100000.0) == "Body\n\n"

    def test_rootfile_outside_sandbox(self, temp_dir, sandbox_base):
        path = write_epub(temp_dir, create_epub_with_traversal_rootfile())

        with pytest.raises(PathTraversalError):
            convert(path)
        assert list(sandbox_base.iterdir()) == []

    def test_traversal_href_skipped(self, temp_dir, sandbox_base, caplog):
        path = write_epub(temp_dir, create_epub_with_traversal_href())
        stream = io.StringIO()

        with caplog.at_level(logging.WARNING):
            result = EpubConverter().convert(path, stream)

        assert stream.getvalue() == "Alpha\n\nBeta\n\n"
        assert result.skipped == 1
        assert "root:" not in stream.getvalue()

    def test_sibling_prefix_href_skipped(self, temp_dir, sandbox_base):
        path = write_epub(temp_dir, create_epub_with_sibling_prefix_href())
        stream = io.StringIO()

        result = EpubConverter().convert(path, stream)

        assert "Should not appear" not in stream.getvalue()
        assert stream.getvalue() == "Alpha\n\n"
        assert result.skipped == 1


@pytest.mark.integration
class TestBrokenArchives:
    """Archives that are damaged rather than hostile."""

    def test_not_a_zip(self, temp_dir, sandbox_base):
        path = temp_dir / "book.epub"
        path.write_bytes(b"PK\x03\x04 truncated")

        with pytest.raises(ExtractionError):
            convert(path)
        assert list(sandbox_base.iterdir()) == []

    def test_container_without_rootfile(self, temp_dir, sandbox_base):
        path = write_epub(temp_dir, build_epub({}, container="<container><rootfiles/></container>"))

        with pytest.raises(MalformedContainerError):
            convert(path)
        assert list(sandbox_base.iterdir()) == []
