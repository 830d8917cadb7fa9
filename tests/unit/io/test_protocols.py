"""Unit tests for request and response values."""

import pytest

from harvest.records import FetchRequest, FetchResponse
from harvest.records.core import FetchError, RateLimitError


class TestFetchRequest:
    """Test request helpers."""

    def test_full_url(self):
        assert FetchRequest("https://a.com/x").full_url == "https://a.com/x"
        assert FetchRequest("https://a.com/x", params={"p": "2"}).full_url == "https://a.com/x?p=2"
        assert FetchRequest("https://a.com/x?q=1", params={"p": "2"}).full_url == "https://a.com/x?q=1&p=2"

    def test_with_params(self):
        request = FetchRequest("https://a.com/x", params={"p": "1", "q": "x"})
        updated = request.with_params(p=2, q=None)
        assert updated.params == {"p": "2"}
        assert request.params == {"p": "1", "q": "x"}

    def test_with_cookies(self):
        request = FetchRequest("https://a.com/x", cookies={"a": "1"})
        assert request.with_cookies({}) is request
        assert request.with_cookies({"b": "2"}).cookies == {"a": "1", "b": "2"}

    @pytest.mark.parametrize(
        "url,host",
        [("https://A.com/x", "a.com"), ("http://a.com:8080/", "a.com:8080"), ("/tmp/page.html", "local")],
    )
    def test_host(self, url, host):
        assert FetchRequest(url).host == host


class TestFetchResponse:
    """Test status checks."""

    def test_ok(self):
        FetchResponse("https://a.com", b"ok").raise_for_status()

    @pytest.mark.parametrize("status", [404, 500])
    def test_error_status(self, status):
        with pytest.raises(FetchError) as e:
            FetchResponse("https://a.com", b"", status=status).raise_for_status()
        assert e.value.status_code == status

    def test_rate_limited(self):
        response = FetchResponse("https://a.com", b"", status=429, headers={"Retry-After": "3"})
        with pytest.raises(RateLimitError) as e:
            response.raise_for_status()
        assert e.value.retry_after == 3.0

    def test_text(self):
        assert FetchResponse("https://a.com", "é".encode()).text == "é"
