import pytest
import requests

from goalcrawl.crawler import FetchBackend, Fetcher, FetchOptions, FetchResult


class FakeResponse:
    def __init__(self, url: str, status_code: int = 200, text: str = "<html>ok</html>") -> None:
        self.url = url
        self.status_code = status_code
        self.text = text
        self.headers = {"Content-Type": "text/html; charset=utf-8"}


@pytest.fixture
def fetcher(make_options):
    instance = Fetcher(make_options())
    yield instance
    instance.close()


def scripted_get(monkeypatch, outcomes):
    """Patch Session.get to replay `outcomes` (responses or exceptions)."""
    calls = []

    def fake_get(self, url, **kwargs):
        calls.append((url, kwargs))
        outcome = outcomes[min(len(calls), len(outcomes)) - 1]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    monkeypatch.setattr(requests.Session, "get", fake_get)
    return calls


def browser_stub(fetcher, result_for):
    calls = []

    def fake_selenium(url, options):
        calls.append(url)
        return result_for(url)

    fetcher._fetch_once_selenium = fake_selenium
    return calls


def rendered(url: str) -> FetchResult:
    return FetchResult(
        requested_url=url,
        final_url=url,
        status_code=200,
        html="<html>rendered</html>",
        backend=FetchBackend.SELENIUM,
    )


def test_plain_http_success(monkeypatch, fetcher):
    url = "https://docs.example.com/page"
    calls = scripted_get(monkeypatch, [FakeResponse(url, text="<html>plain</html>")])
    browser_calls = browser_stub(fetcher, rendered)

    result = fetcher.fetch(url)

    assert result.ok
    assert result.backend == FetchBackend.REQUESTS
    assert result.html == "<html>plain</html>"
    assert result.content_type == "text/html; charset=utf-8"
    assert browser_calls == []
    _, kwargs = calls[0]
    assert kwargs["timeout"] == 20.0
    assert "User-Agent" in kwargs["headers"]


def test_client_error_is_returned_without_fallback(monkeypatch, fetcher):
    url = "https://docs.example.com/private"
    scripted_get(monkeypatch, [FakeResponse(url, status_code=401, text="<form></form>")])
    browser_calls = browser_stub(fetcher, rendered)

    result = fetcher.fetch(url)

    assert result.status_code == 401
    assert result.error is None
    assert not result.ok
    assert browser_calls == []


def test_server_error_falls_back_to_browser(monkeypatch, fetcher):
    url = "https://docs.example.com/flaky"
    scripted_get(monkeypatch, [FakeResponse(url, status_code=503)])
    browser_calls = browser_stub(fetcher, rendered)

    result = fetcher.fetch(url)

    assert browser_calls == [url]
    assert result.backend == FetchBackend.SELENIUM
    assert result.html == "<html>rendered</html>"


def test_transport_errors_are_retried_then_reported(monkeypatch, make_options):
    fetcher = Fetcher(make_options(retries=2))
    url = "https://docs.example.com/down"
    calls = scripted_get(monkeypatch, [requests.ConnectionError("refused")])
    browser_stub(
        fetcher,
        lambda u: FetchResult(
            requested_url=u,
            final_url=None,
            status_code=None,
            html=None,
            backend=FetchBackend.SELENIUM,
            error="RuntimeError: no driver",
        ),
    )

    result = fetcher.fetch(url)

    assert len(calls) == 3
    assert result.backend == FetchBackend.REQUESTS
    assert result.error is not None and result.error.startswith("ConnectionError")
    assert result.status_code is None


def test_retry_recovers_after_timeout(monkeypatch, make_options):
    fetcher = Fetcher(make_options(retries=1))
    url = "https://docs.example.com/slow"
    calls = scripted_get(monkeypatch, [requests.Timeout("slow"), FakeResponse(url)])

    result = fetcher.fetch(url)

    assert len(calls) == 2
    assert result.ok


def test_javascript_goes_straight_to_browser(monkeypatch, fetcher):
    url = "https://docs.example.com/app"
    calls = scripted_get(monkeypatch, [FakeResponse(url)])
    browser_calls = browser_stub(fetcher, rendered)

    result = fetcher.fetch(url, FetchOptions(execute_javascript=True))

    assert calls == []
    assert browser_calls == [url]
    assert result.backend == FetchBackend.SELENIUM


def test_browser_fallback_can_be_disabled(monkeypatch, make_options):
    fetcher = Fetcher(make_options(), browser_fallback=False)
    url = "https://docs.example.com/flaky"
    scripted_get(monkeypatch, [FakeResponse(url, status_code=500)])
    browser_calls = browser_stub(fetcher, rendered)

    result = fetcher.fetch(url)

    assert result.status_code == 500
    assert browser_calls == []


def test_invalid_url_and_closed_fetcher(fetcher):
    assert fetcher.fetch("not-a-url").error == "Invalid or unsupported URL"

    fetcher.close()
    assert fetcher.fetch("https://docs.example.com/").error == "Fetcher is closed"
