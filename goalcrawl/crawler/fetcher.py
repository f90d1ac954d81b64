"""URL fetching with a requests fast path and a selenium rendering fallback."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

import requests
from selenium import webdriver
from selenium.common.exceptions import TimeoutException, WebDriverException
from selenium.webdriver.chrome.options import Options as ChromeOptions
from selenium.webdriver.firefox.options import Options as FirefoxOptions

from .config import ScraperOptions
from .types import FetchBackend, FetchOptions, FetchResult
from .url import normalize_url


LOGGER = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = frozenset({408, 429})


@dataclass(frozen=True, slots=True)
class _AttemptConfig:
    attempts: int
    backoff_seconds: float


def _parse_cookie_header(cookies: str) -> list[tuple[str, str]]:
    pairs: list[tuple[str, str]] = []
    for part in cookies.split(";"):
        name, sep, value = part.strip().partition("=")
        if sep and name:
            pairs.append((name.strip(), value.strip()))
    return pairs


class Fetcher:
    """Fetch URLs with `requests`, falling back to a headless browser.

    - Without JavaScript, a plain HTTP GET is tried first; transport errors,
      5xx, 408 and 429 fall back to the browser path.
    - 4xx responses are returned as-is so callers can inspect login walls.
    - The selenium driver is shared and serialized with a lock; the requests
      session is thread-local.
    """

    def __init__(self, config: ScraperOptions, *, browser_fallback: bool = True) -> None:
        self.config = config
        self.browser_fallback = browser_fallback

        self._thread_local = threading.local()

        self._selenium_lock = threading.Lock()
        self._selenium_driver = None

        self._closed = False
        self._closed_lock = threading.Lock()

    def fetch(self, url: str, options: FetchOptions | None = None) -> FetchResult:
        """Fetch one URL; never raises, failures are reported in `error`."""

        opts = options or FetchOptions(execute_javascript=self.config.execute_javascript)

        normalized = normalize_url(url)
        if normalized is None:
            return FetchResult(
                requested_url=url,
                final_url=None,
                status_code=None,
                html=None,
                error="Invalid or unsupported URL",
            )

        if self._is_closed():
            return FetchResult(
                requested_url=normalized,
                final_url=None,
                status_code=None,
                html=None,
                error="Fetcher is closed",
            )

        attempt_cfg = _AttemptConfig(
            attempts=max(1, self.config.retries + 1),
            backoff_seconds=max(0.0, self.config.retry_backoff_seconds),
        )

        if opts.execute_javascript:
            return self._fetch_with_retries(
                url=normalized,
                options=opts,
                backend=FetchBackend.SELENIUM,
                fetch_once=self._fetch_once_selenium,
                attempt_cfg=attempt_cfg,
            )

        result = self._fetch_with_retries(
            url=normalized,
            options=opts,
            backend=FetchBackend.REQUESTS,
            fetch_once=self._fetch_once_requests,
            attempt_cfg=attempt_cfg,
        )
        if self._is_terminal_result(result) or not self.browser_fallback:
            return result

        LOGGER.info(
            "Falling back to browser url=%s status=%s error=%s",
            normalized,
            result.status_code,
            result.error,
        )
        rendered = self._fetch_once_selenium(normalized, opts)
        if rendered.error is None:
            return rendered
        LOGGER.warning("Browser fallback failed url=%s error=%s", normalized, rendered.error)
        return result

    def close(self) -> None:
        """Close fetcher resources (notably the selenium browser)."""

        with self._closed_lock:
            self._closed = True

        with self._selenium_lock:
            if self._selenium_driver is None:
                return
            try:
                self._selenium_driver.quit()
            except WebDriverException as exc:
                LOGGER.debug("Ignoring selenium shutdown error: %s", exc)
            finally:
                self._selenium_driver = None

    def __enter__(self) -> "Fetcher":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _is_closed(self) -> bool:
        with self._closed_lock:
            return self._closed

    def _fetch_with_retries(
        self,
        *,
        url: str,
        options: FetchOptions,
        backend: FetchBackend,
        fetch_once: Callable[[str, FetchOptions], FetchResult],
        attempt_cfg: _AttemptConfig,
    ) -> FetchResult:
        last_result: FetchResult | None = None

        for attempt in range(1, attempt_cfg.attempts + 1):
            if self._is_closed():
                return FetchResult(
                    requested_url=url,
                    final_url=None,
                    status_code=None,
                    html=None,
                    backend=backend,
                    error="Fetcher is closed",
                )

            result = fetch_once(url, options)
            last_result = result

            if self._is_terminal_result(result):
                return result

            LOGGER.debug(
                "Retryable fetch result url=%s attempt=%s status=%s error=%s",
                url,
                attempt,
                result.status_code,
                result.error,
            )
            if attempt < attempt_cfg.attempts and attempt_cfg.backoff_seconds > 0:
                time.sleep(attempt_cfg.backoff_seconds * attempt)

        if last_result is None:
            return FetchResult(
                requested_url=url,
                final_url=None,
                status_code=None,
                html=None,
                backend=backend,
                error="Unknown fetch failure",
            )

        return last_result

    @staticmethod
    def _is_terminal_result(result: FetchResult) -> bool:
        if result.error is not None:
            return False

        if result.status_code is None:
            return False

        if result.status_code in RETRYABLE_STATUS_CODES or result.status_code >= 500:
            return False

        return True

    def _request_headers(self, options: FetchOptions) -> dict[str, str]:
        headers = self.config.headers()
        headers.update(options.headers)
        if options.cookies:
            headers["Cookie"] = options.cookies
        return headers

    def _timeout_for(self, options: FetchOptions) -> float:
        return options.timeout_seconds or self.config.timeout_seconds

    def _fetch_once_requests(self, url: str, options: FetchOptions) -> FetchResult:
        started = time.perf_counter()
        session = self._thread_local_session()

        try:
            response = session.get(
                url,
                headers=self._request_headers(options),
                timeout=self._timeout_for(options),
                allow_redirects=True,
            )
            elapsed_ms = int((time.perf_counter() - started) * 1000)

            return FetchResult(
                requested_url=url,
                final_url=response.url or url,
                status_code=response.status_code,
                html=response.text or "",
                headers={str(k): str(v) for k, v in response.headers.items()},
                content_type=response.headers.get("Content-Type"),
                backend=FetchBackend.REQUESTS,
                elapsed_ms=elapsed_ms,
                error=None,
            )
        except requests.RequestException as exc:
            elapsed_ms = int((time.perf_counter() - started) * 1000)
            return FetchResult(
                requested_url=url,
                final_url=None,
                status_code=None,
                html=None,
                backend=FetchBackend.REQUESTS,
                elapsed_ms=elapsed_ms,
                error=f"{exc.__class__.__name__}: {exc}",
            )

    def _fetch_once_selenium(self, url: str, options: FetchOptions) -> FetchResult:
        started = time.perf_counter()

        with self._selenium_lock:
            try:
                driver = self._get_or_create_selenium_driver()
            except (RuntimeError, WebDriverException) as exc:
                return FetchResult(
                    requested_url=url,
                    final_url=None,
                    status_code=None,
                    html=None,
                    backend=FetchBackend.SELENIUM,
                    elapsed_ms=int((time.perf_counter() - started) * 1000),
                    error=f"Failed to initialize selenium driver: {exc}",
                )

            try:
                driver.set_page_load_timeout(max(1, int(self._timeout_for(options))))
                driver.get(url)

                if options.cookies:
                    for name, value in _parse_cookie_header(options.cookies):
                        driver.add_cookie({"name": name, "value": value})
                    driver.get(url)

                # Settle time for pages that hydrate content after load.
                if self.config.js_settle_seconds > 0:
                    time.sleep(self.config.js_settle_seconds)

                final_url = driver.current_url or url
                html = driver.page_source or ""
                elapsed_ms = int((time.perf_counter() - started) * 1000)

                # The browser does not expose the HTTP status; a rendered page counts as 200.
                return FetchResult(
                    requested_url=url,
                    final_url=final_url,
                    status_code=200,
                    html=html,
                    content_type="text/html; charset=utf-8",
                    backend=FetchBackend.SELENIUM,
                    elapsed_ms=elapsed_ms,
                    error=None,
                )
            except (TimeoutException, WebDriverException) as exc:
                elapsed_ms = int((time.perf_counter() - started) * 1000)
                return FetchResult(
                    requested_url=url,
                    final_url=None,
                    status_code=None,
                    html=None,
                    backend=FetchBackend.SELENIUM,
                    elapsed_ms=elapsed_ms,
                    error=f"{exc.__class__.__name__}: {exc}",
                )

    def _thread_local_session(self) -> requests.Session:
        session = getattr(self._thread_local, "session", None)
        if session is None:
            session = requests.Session()
            self._thread_local.session = session
        return session

    def _get_or_create_selenium_driver(self):
        if self._selenium_driver is not None:
            return self._selenium_driver

        errors: list[str] = []

        # Try Chrome first.
        try:
            chrome_options = ChromeOptions()
            chrome_options.add_argument("--headless=new")
            chrome_options.add_argument("--disable-gpu")
            chrome_options.add_argument("--no-sandbox")
            chrome_options.add_argument("--disable-dev-shm-usage")
            chrome_options.add_argument(f"--user-agent={self.config.user_agent}")
            self._selenium_driver = webdriver.Chrome(options=chrome_options)
            return self._selenium_driver
        except WebDriverException as exc:
            errors.append(f"Chrome: {exc}")

        # Fallback to Firefox.
        try:
            firefox_options = FirefoxOptions()
            firefox_options.add_argument("-headless")
            firefox_options.set_preference("general.useragent.override", self.config.user_agent)
            self._selenium_driver = webdriver.Firefox(options=firefox_options)
            return self._selenium_driver
        except WebDriverException as exc:
            errors.append(f"Firefox: {exc}")

        raise RuntimeError("; ".join(errors) or "No usable Selenium driver found")


__all__ = ["Fetcher"]
