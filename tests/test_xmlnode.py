"""Tests for feed node normalization."""

from __future__ import annotations

from local_news_aggregator.xmlnode import as_list, attr, extract_text


class TestExtractText:
    def test_plain_string_is_unchanged(self):
        for s in ["Amsterdam", "  padded  ", "", "<p>html</p>"]:
            assert extract_text(s) == s

    def test_none_is_empty(self):
        assert extract_text(None) == ""

    def test_text_payload(self):
        assert extract_text({"#text": "Hallo", "@_lang": "nl"}) == "Hallo"
        assert extract_text({"type": "text/html", "value": "<b>x</b>"}) == "<b>x</b>"

    def test_url_attribute(self):
        assert extract_text({"@_url": "https://img.example/a.jpg"}) == "https://img.example/a.jpg"

    def test_list_is_joined_with_spaces(self):
        assert extract_text(["a", {"#text": "b"}, None, ["c", "d"]]) == "a b c d"

    def test_nested_children(self):
        node = {"@_id": "x", "p": ["first", {"span": "second"}]}
        assert extract_text(node) == "first second"

    def test_numbers_are_coerced(self):
        assert extract_text(42) == "42"
        assert extract_text({"#text": 3.5}) == "3.5"

    def test_odd_objects_never_raise(self):
        class Weird:
            def __str__(self):
                return "weird"

        assert extract_text(Weird()) == "weird"
        assert extract_text(True) == ""


class TestHelpers:
    def test_as_list(self):
        assert as_list(None) == []
        assert as_list("x") == ["x"]
        assert as_list(["x", "y"]) == ["x", "y"]
        assert as_list({"a": 1}) == [{"a": 1}]

    def test_attr_prefers_first_name_and_both_spellings(self):
        node = {"@_url": "u1", "href": "h1", "type": "image/png"}
        assert attr(node, "url", "href") == "u1"
        assert attr(node, "href") == "h1"
        assert attr(node, "type") == "image/png"
        assert attr(node, "missing") == ""
        assert attr("not a mapping", "url") == ""
