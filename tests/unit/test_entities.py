"""Unit tests for HTML character reference decoding."""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from epub2txt.utils.entities import decode_entities, translate_entity


@pytest.mark.unit
class TestTranslateEntity:
    """Test translation of single reference bodies."""

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("amp", "&"),
            ("lt", "<"),
            ("quot", '"'),
            ("eacute", "é"),
            ("mdash", "—"),
            ("#233", "é"),
            ("#x41", "A"),
            ("#X41", "A"),
        ],
    )
    def test_known_references(self, name, expected):
        assert translate_entity(name) == expected

    @pytest.mark.parametrize("name", ["bogus", "#", "#x", "#12ab", "#0", "#xD800", "#1114112", ""])
    def test_unknown_or_invalid_references_are_literal(self, name):
        assert translate_entity(name) == f"&{name};"


@pytest.mark.unit
class TestDecodeEntities:
    """Test the entity scanner."""

    def test_named_entity(self):
        assert decode_entities("A &amp; B") == "A & B"

    def test_unterminated_entity_emitted_literally(self):
        assert decode_entities("&amp") == "&amp"

    def test_unterminated_entity_after_text(self):
        assert decode_entities("Tom & Jerry") == "Tom & Jerry"

    def test_numeric_entities(self):
        assert decode_entities("caf&#233; &#x263A;") == "café ☺"

    def test_unknown_entity_kept(self):
        assert decode_entities("a &nosuch; b") == "a &nosuch; b"

    def test_multiple_entities(self):
        assert decode_entities("&lt;p&gt; &quot;hi&quot;") == '<p> "hi"'

    def test_decoding_is_single_pass(self):
        assert decode_entities("&amp;amp;") == "&amp;"

    def test_empty_string(self):
        assert decode_entities("") == ""


@pytest.mark.unit
@pytest.mark.fuzzing
class TestDecodeEntitiesFuzzing:
    """Property-based tests for the entity scanner."""

    @given(st.text().filter(lambda s: "&" not in s))
    def test_text_without_ampersand_is_unchanged(self, text):
        """Property: decoding is the identity on text without '&'."""
        assert decode_entities(text) == text

    @given(st.text().filter(lambda s: "&" not in s))
    def test_idempotent_without_ampersand(self, text):
        """Property: decoding twice equals decoding once when no '&' is present."""
        assert decode_entities(decode_entities(text)) == decode_entities(text)

    @given(st.text())
    def test_never_raises(self, text):
        """Property: any input decodes to a string."""
        assert isinstance(decode_entities(text), str)

    @given(st.text(alphabet=st.characters(blacklist_characters="&;"), min_size=1, max_size=20))
    def test_unterminated_entity_round_trips(self, body):
        """Property: an entity still open at end of input comes back verbatim."""
        assert decode_entities(f"x&{body}") == f"x&{body}"
