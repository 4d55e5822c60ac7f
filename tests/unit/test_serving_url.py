"""
Serving URL composition and parsing tests.
"""

import pytest

from core.serving_url import build_serving_url, parse_serving_path


class TestBuildServingUrl:

    def test_secure_forces_https(self):
        url = build_serving_url("http://images.example.com/api", "tok", 450, secure=True)
        assert url == "https://images.example.com/api/img/tok=s450"

    def test_insecure_keeps_scheme(self):
        url = build_serving_url("http://localhost:7071/api/", "tok", 200, secure=False)
        assert url == "http://localhost:7071/api/img/tok=s200"


class TestParseServingPath:

    def test_token_and_size(self):
        assert parse_serving_path("abc-_123=s450") == ("abc-_123", 450)

    def test_token_without_size(self):
        assert parse_serving_path("abc") == ("abc", None)

    @pytest.mark.parametrize("segment", ["", "=s450", "abc=450", "abc=sx", "abc=s"])
    def test_malformed(self, segment):
        with pytest.raises(ValueError):
            parse_serving_path(segment)
