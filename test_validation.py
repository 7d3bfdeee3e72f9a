"""
Unit tests for content rules and helpers.

Tests cover:
- escape_html ordering and entities
- char_count over code points
- parse_int leniency
- kind normalization and JavaScript-style stringification
- validate_new_message rule order
"""

import pytest

from messagewall.errors import BadContent, BadType, TooLong
from messagewall.utils import char_count, clamp, escape_html, js_string, parse_int
from messagewall.validation import MISSING, MessageKind, clamp_nickname, normalize_kind, validate_new_message


class TestEscapeHtml:

    def test_all_special_characters(self):
        assert escape_html("&<>\"'") == "&amp;&lt;&gt;&quot;&#39;"

    def test_existing_entities_escaped_again(self):
        assert escape_html("&lt;") == "&amp;lt;"

    def test_plain_text_unchanged(self):
        assert escape_html("hello 世界") == "hello 世界"


class TestCharCount:

    def test_ascii(self):
        assert char_count("hello") == 5

    def test_cjk_counts_once_per_character(self):
        text = "你好世界"
        assert char_count(text) == 4
        assert len(text.encode("utf-8")) == 12

    def test_astral_plane_counts_once(self):
        assert char_count("😀👍") == 2


class TestParseInt:

    @pytest.mark.parametrize("value,expected", [
        ("7", 7),
        ("  3", 3),
        ("-2", -2),
        ("12abc", 12),
        ("abc", 20),
        ("", 20),
        (None, 20),
        ("1.9", 1),
    ])
    def test_parse(self, value, expected):
        assert parse_int(value, 20) == expected

    def test_clamp(self):
        assert clamp(0, 1, 100) == 1
        assert clamp(500, 1, 100) == 100
        assert clamp(-4, 1) == 1
        assert clamp(42, 1) == 42


class TestNormalizeKind:

    def test_missing_means_wall(self):
        assert normalize_kind() is MessageKind.WALL
        assert normalize_kind(MISSING) is MessageKind.WALL

    @pytest.mark.parametrize("value,expected", [
        ("wall", MessageKind.WALL),
        ("WALL", MessageKind.WALL),
        ("Note", MessageKind.NOTE),
        (["note"], MessageKind.NOTE),
        ([["Wall"]], MessageKind.WALL),
    ])
    def test_accepted(self, value, expected):
        assert normalize_kind(value) is expected

    @pytest.mark.parametrize("value", [None, "", "all", "notes", 0, False, ["note", "wall"], [], {}])
    def test_rejected(self, value):
        with pytest.raises(BadType):
            normalize_kind(value)


class TestJsString:

    @pytest.mark.parametrize("value,expected", [
        (None, "null"),
        (True, "true"),
        (False, "false"),
        (3, "3"),
        (3.0, "3"),
        (2.5, "2.5"),
        ("Note", "Note"),
        (["note"], "note"),
        ([1, None, "a"], "1,,a"),
        ([[1, 2], 3], "1,2,3"),
        ([], ""),
        ({"a": 1}, "[object Object]"),
    ])
    def test_matches_javascript(self, value, expected):
        assert js_string(value) == expected


class TestClampNickname:

    def test_default_for_missing(self):
        assert clamp_nickname(None, "anon") == "anon"

    def test_default_for_blank(self):
        assert clamp_nickname("   ", "anon") == "anon"

    def test_clamped(self):
        assert clamp_nickname("x" * 20, "anon") == "x" * 16


class TestValidateNewMessage:

    def test_valid_note(self):
        result = validate_new_message("  <hi>  ", "note", "bob", default_nickname="anon")

        assert result.content == "&lt;hi&gt;"
        assert result.kind is MessageKind.NOTE
        assert result.nickname == "bob"

    def test_content_rule_before_type_rule(self):
        with pytest.raises(BadContent):
            validate_new_message("", "bogus", None, default_nickname="anon")

    def test_type_rule_before_length_rule(self):
        with pytest.raises(BadType):
            validate_new_message("x" * 600, "bogus", None, default_nickname="anon")

    def test_too_long_message_is_kind_specific(self):
        with pytest.raises(TooLong) as note_error:
            validate_new_message("x" * 13, "note", None, default_nickname="anon")
        with pytest.raises(TooLong) as wall_error:
            validate_new_message("x" * 501, "wall", None, default_nickname="anon")

        assert note_error.value.message == "小纸条 ≤12 字"
        assert wall_error.value.message == "留言 ≤500 字"
        assert note_error.value.status_code == 400

    def test_limits(self):
        assert MessageKind.NOTE.max_chars == 12
        assert MessageKind.WALL.max_chars == 500
