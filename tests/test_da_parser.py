"""Tests for DirectAdmin reply parsing utilities."""

from __future__ import annotations

import pytest

from panelsync.exceptions import RemoteReportedError
from panelsync.models.remote import ResponseKind
from panelsync.utils.da_parser import (
    extract_names,
    limit_value,
    on_off,
    parse_body,
    parse_query_string,
    raise_for_remote_error,
    remote_error_code,
    serialize_query,
    split_email,
)
from tests.mock_directadmin import HTML_ERROR_PAGE, LOGIN_PAGE


class TestQueryString:
    def test_simple_pairs(self):
        assert parse_query_string("a=1&b=two") == {"a": "1", "b": "two"}

    def test_url_decoding(self):
        parsed = parse_query_string("text=Cannot+create%20package&details=a%26b%3Dc")
        assert parsed["text"] == "Cannot create package"
        assert parsed["details"] == "a&b=c"

    def test_key_without_value(self):
        assert parse_query_string("flag&x=1") == {"flag": "", "x": "1"}

    def test_repeated_list_keys_are_gathered(self):
        parsed = parse_query_string("list[]=basic&list[]=pro&error=0")
        assert parsed["list"] == ["basic", "pro"]
        assert parsed["error"] == "0"

    def test_empty_and_non_string(self):
        assert parse_query_string("") == {}
        assert parse_query_string(None) == {}

    def test_serialize_then_parse_keeps_awkward_values(self):
        params = {"text": "a b&c=d", "quota": 10, "note": None}
        parsed = parse_query_string(serialize_query(params))
        assert parsed == {"text": "a b&c=d", "quota": "10", "note": ""}


class TestParseBody:
    def test_json_object(self):
        kind, payload = parse_body({"error": "0", "text": "ok"})
        assert kind == ResponseKind.json
        assert payload["text"] == "ok"

    def test_json_array_is_wrapped(self):
        kind, payload = parse_body('["a", "b"]')
        assert kind == ResponseKind.json
        assert payload == {"list": ["a", "b"]}

    def test_json_text(self):
        kind, payload = parse_body('{"list": ["x"]}')
        assert kind == ResponseKind.json
        assert payload == {"list": ["x"]}

    def test_broken_json_falls_back_to_query(self):
        kind, payload = parse_body("{not json")
        assert kind == ResponseKind.query
        assert "{not json" in payload

    def test_empty_body(self):
        assert parse_body("") == (ResponseKind.empty, {})
        assert parse_body("   \n") == (ResponseKind.empty, {})
        assert parse_body(None) == (ResponseKind.empty, {})

    def test_html_pages(self):
        assert parse_body(HTML_ERROR_PAGE) == (ResponseKind.html, {})
        assert parse_body(LOGIN_PAGE) == (ResponseKind.html, {})

    def test_query_body(self):
        kind, payload = parse_body(b"error=0&text=Saved")
        assert kind == ResponseKind.query
        assert payload == {"error": "0", "text": "Saved"}

    def test_unknown_shape_is_empty(self):
        assert parse_body(42) == (ResponseKind.empty, {})


class TestRemoteErrors:
    def test_zero_is_not_an_error(self):
        assert remote_error_code({"error": "0", "text": "Saved"}) is None
        assert remote_error_code({"error": 0}) is None
        raise_for_remote_error({"error": "0"})

    def test_missing_or_blank(self):
        assert remote_error_code({}) is None
        assert remote_error_code({"error": ""}) is None
        assert remote_error_code({"error": None}) is None

    def test_text_is_carried_verbatim(self):
        with pytest.raises(RemoteReportedError) as info:
            raise_for_remote_error(
                {"error": "1", "text": "That package already exists", "details": "basic"},
                status_code=200,
            )
        err = info.value
        assert err.message == "That package already exists"
        assert err.error_code == "1"
        assert err.details == "basic"
        assert err.status_code == 200

    def test_code_used_when_text_missing(self):
        with pytest.raises(RemoteReportedError) as info:
            raise_for_remote_error({"error": "1"})
        assert info.value.message == "1"

    def test_zero_sentinel_text(self):
        with pytest.raises(RemoteReportedError) as info:
            raise_for_remote_error({"error": "1", "text": "0"})
        assert info.value.is_zero_sentinel


class TestExtractNames:
    def test_query_list(self):
        assert extract_names(parse_query_string("list[]=a&list[]=b")) == ["a", "b"]

    def test_json_list_and_bare_array(self):
        assert extract_names({"list": ["a", "b"]}) == ["a", "b"]
        assert extract_names(["a", "b"]) == ["a", "b"]

    def test_flat_object_skips_reserved_keys(self):
        payload = {"alpha": "1", "beta": "1", "error": "0", "text": "", "suspended": "no"}
        assert extract_names(payload) == ["alpha", "beta"]

    def test_single_string_list(self):
        assert extract_names({"list": "only"}) == ["only"]

    def test_filters_and_dedupes(self):
        names = extract_names({"list": ["a", " a ", "", "0", "_hidden", None, 5, "b"]})
        assert names == ["a", "b"]

    def test_same_names_from_every_shape(self):
        shapes = [
            parse_query_string("list[]=x&list[]=y"),
            {"list": ["x", "y"]},
            {"x": "1", "y": "1"},
            ["x", "y"],
        ]
        assert all(extract_names(shape) == ["x", "y"] for shape in shapes)


class TestShapingHelpers:
    def test_on_off(self):
        assert on_off(True) == "ON"
        assert on_off(False) == "OFF"
        assert on_off("yes") == "ON"
        assert on_off("ON") == "ON"
        assert on_off("off") == "OFF"
        assert on_off(None) == "OFF"

    def test_limit_value(self):
        assert limit_value(None) == "unlimited"
        assert limit_value("") == "unlimited"
        assert limit_value("Unlimited") == "unlimited"
        assert limit_value(100) == "100"
        assert limit_value(2.0) == "2"
        assert limit_value(" 5 ") == "5"

    def test_split_email(self):
        assert split_email("Info@Example.COM") == ("Info", "example.com")

    @pytest.mark.parametrize("bad", ["", "nobody", "@example.com", "a@", "a@b@c"])
    def test_split_email_rejects(self, bad):
        with pytest.raises(ValueError):
            split_email(bad)
