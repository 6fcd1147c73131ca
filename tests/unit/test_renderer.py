"""Unit tests for XHTML to plain text rendering."""

import io

import pytest

from epub2txt.exceptions import RenderError
from epub2txt.options import ConversionOptions
from epub2txt.renderer import XhtmlTextRenderer


def render(markup, **options):
    return XhtmlTextRenderer(ConversionOptions(**options)).render_to_string(markup)


@pytest.mark.unit
class TestRenderToString:
    """Test block structure and whitespace handling."""

    def test_paragraphs_separated_by_blank_line(self):
        assert render("<body><h1>Title</h1><p>One</p><p>Two</p></body>") == "Title\n\nOne\n\nTwo"

    def test_inline_formatting_stripped(self):
        assert render("<p>A <b>bold</b> and <em>italic</em> <a href='x'>link</a>.</p>") == "A bold and italic link."

    def test_source_newlines_collapse(self):
        assert render("<p>Line one\n   continues\there</p>") == "Line one continues here"

    def test_br_is_line_break(self):
        assert render("<p>Roses are red,<br/>violets are blue</p>") == "Roses are red,\nviolets are blue"

    def test_preformatted_whitespace_kept(self):
        assert render("<p>Code:</p><pre>  x = 1\n  y = 2</pre>") == "Code:\n\n  x = 1\n  y = 2"

    def test_scripts_styles_and_head_dropped(self):
        markup = (
            "<html><head><title>T</title><style>p {}</style></head>"
            "<body><script>alert(1)</script><p>Visible</p></body></html>"
        )
        assert render(markup) == "Visible"

    def test_comments_dropped(self):
        assert render("<p>a<!-- hidden -->b</p>") == "ab"

    def test_entities_decoded(self):
        assert render("<p>caf&eacute; &amp; &#8220;bar&#8221;</p>") == "café & “bar”"

    def test_list_items_are_separate_paragraphs(self):
        assert render("<ul><li>One</li><li>Two</li></ul>") == "One\n\nTwo"

    def test_table_cells_on_one_line(self):
        assert render("<table><tr><td>a</td><td>b</td></tr><tr><td>c</td><td>d</td></tr></table>") == "a b\n\nc d"

    def test_empty_body(self):
        assert render("<html><body>  </body></html>") == ""

    def test_xhtml_bytes_with_declaration(self):
        markup = '<?xml version="1.0" encoding="UTF-8"?><html xmlns="http://www.w3.org/1999/xhtml"><body><p>Déjà</p></body></html>'
        assert render(markup.encode("utf-8")) == "Déjà"


@pytest.mark.unit
class TestRenderOptions:
    """Test width re-flow and ASCII folding."""

    def test_wrap_width(self):
        assert render("<p>one two three four</p>", max_line_width=9) == "one two\nthree\nfour"

    def test_long_words_not_broken(self):
        assert render("<p>supercalifragilistic</p>", max_line_width=5) == "supercalifragilistic"

    def test_preformatted_not_wrapped(self):
        assert render("<pre>one two three four</pre>", max_line_width=5) == "one two three four"

    def test_ascii_only(self):
        assert render("<p>Café — “quoted” …</p>", ascii_only=True) == 'Cafe -- "quoted" ...'

    def test_format_text(self):
        renderer = XhtmlTextRenderer(ConversionOptions(max_line_width=10, ascii_only=True))
        assert renderer.format_text("Title: Élan vital") == "Title:\nElan vital"


@pytest.mark.unit
class TestRenderFile:
    """Test file rendering and failures."""

    def test_writes_text_and_blank_line(self, temp_dir):
        path = temp_dir / "c1.xhtml"
        path.write_text("<html><body><p>Hello</p></body></html>", encoding="utf-8")
        stream = io.StringIO()

        XhtmlTextRenderer().render_file(path, stream)

        assert stream.getvalue() == "Hello\n\n"

    def test_empty_document_writes_nothing(self, temp_dir):
        path = temp_dir / "empty.xhtml"
        path.write_text("<html><body></body></html>", encoding="utf-8")
        stream = io.StringIO()

        XhtmlTextRenderer().render_file(path, stream)

        assert stream.getvalue() == ""

    def test_missing_file(self, temp_dir):
        with pytest.raises(RenderError, match="Cannot read") as exc_info:
            XhtmlTextRenderer().render_file(temp_dir / "nope.xhtml", io.StringIO())
        assert exc_info.value.file_path.endswith("nope.xhtml")

    def test_deep_nesting_reported_as_render_error(self, temp_dir):
        path = temp_dir / "deep.xhtml"
        path.write_text("<div>" * 5000 + "x" + "</div>" * 5000, encoding="utf-8")

        with pytest.raises(RenderError) as exc_info:
            XhtmlTextRenderer().render_file(path, io.StringIO())
        assert exc_info.value.file_path == str(path)
