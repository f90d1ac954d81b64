"""Login-wall detection and human-in-the-loop authentication requests."""

from __future__ import annotations

import logging
import re
from typing import Mapping
from urllib.parse import quote
import uuid

from bs4 import BeautifulSoup, Tag

from .constants import DEFAULT_AUTH_PORTAL_BASE
from .types import AuthDetection, AuthRequest, AuthType
from .url import path_of, resolve_url


LOGGER = logging.getLogger(__name__)

AUTH_STATUS_CODES = frozenset({401, 403})
BASIC_AUTH_STATUS = 401

LOGIN_PATH_RE = re.compile(r"login|signin|authenticate|auth/|sso", re.IGNORECASE)
LOGIN_TITLE_RE = re.compile(r"login|sign in|authenticate", re.IGNORECASE)
TITLE_RE = re.compile(r"<title[^>]*>(.*?)</title>", re.IGNORECASE | re.DOTALL)
LOGIN_FORM_TAG_RE = re.compile(r"<form[^>]*(?:login|signin|authentication)[^>]*>", re.IGNORECASE)
PASSWORD_INPUT_RE = re.compile(r"<input[^>]*type=[\"']password[\"'][^>]*>", re.IGNORECASE)
IDENTITY_INPUT_RE = re.compile(r"<input[^>]*type=[\"'](?:text|email|tel)[\"'][^>]*>", re.IGNORECASE)
LOGIN_SUBMIT_RE = re.compile(
    r"<input[^>]*type=[\"'](?:submit|button)[\"'][^>]*(?:login|signin|submit)[^>]*>",
    re.IGNORECASE,
)
LOGIN_LINK_RE = re.compile(
    r"<a[^>]*href=[\"']([^\"']*)[\"'][^>]*>[^<]*(?:login|sign\s*in|log\s*in)[^<]*</a>",
    re.IGNORECASE,
)
WWW_AUTHENTICATE_RE = re.compile(r"www-authenticate", re.IGNORECASE)
OAUTH_URL_RE = re.compile(r"oauth|authorize|authentication", re.IGNORECASE)

EXCLUDED_FIELD_MARKERS = ("csrf", "token")
DEFAULT_FORM_FIELDS_HINT = "username, password"

INSTRUCTIONS = {
    AuthType.BASIC: "Please provide your username and password for basic authentication.",
    AuthType.OAUTH: "Please authorize access through the OAuth flow.",
    AuthType.UNKNOWN: "Please authenticate with the website using your credentials.",
}


class AuthDetector:
    """Stateless detector for pages that sit behind a login wall."""

    def __init__(self, *, auth_portal_base: str = DEFAULT_AUTH_PORTAL_BASE) -> None:
        self.auth_portal_base = auth_portal_base.rstrip("/")

    def detect(
        self,
        html: str | None,
        url: str,
        status_code: int | None,
        headers: Mapping[str, str] | None = None,
    ) -> AuthDetection:
        html_text = html or ""
        is_login_page = self.is_login_page(html_text, url)
        login_form = self.find_password_form(html_text)
        has_login_form = login_form is not None
        status_requires_auth = status_code in AUTH_STATUS_CODES

        requires_auth = is_login_page or has_login_form or status_requires_auth
        if not requires_auth:
            return AuthDetection(requires_auth=False)

        auth_type = self._auth_type(
            html_text,
            url,
            status_code,
            headers,
            has_login_form=has_login_form,
        )
        detection = AuthDetection(
            requires_auth=True,
            auth_type=auth_type,
            login_url=url if is_login_page else self.find_login_url(html_text, url),
            form_fields=(
                _form_field_names(login_form)
                if login_form is not None and auth_type == AuthType.FORM
                else None
            ),
        )
        LOGGER.info(
            "Auth wall detected url=%s status=%s type=%s",
            url,
            status_code,
            auth_type.value,
        )
        return detection

    def create_auth_request(self, url: str, detection: AuthDetection) -> AuthRequest:
        """Package a detection into a request for an external auth handler."""

        session_token = str(uuid.uuid4())
        form_fields = list(detection.form_fields) if detection.form_fields is not None else None

        if detection.auth_type == AuthType.FORM:
            fields = ", ".join(form_fields or []) or DEFAULT_FORM_FIELDS_HINT
            instructions = f"Please log in using the form. Required fields: {fields}"
        else:
            instructions = INSTRUCTIONS.get(detection.auth_type, INSTRUCTIONS[AuthType.UNKNOWN])

        return AuthRequest(
            url=url,
            auth_type=detection.auth_type,
            instructions=instructions,
            callback_url=f"{self.auth_portal_base}/auth-callback?session={session_token}",
            session_token=session_token,
            auth_portal_url=(
                f"{self.auth_portal_base}/auth-portal"
                f"?target={quote(url, safe='')}&session={session_token}"
            ),
            form_fields=form_fields if detection.auth_type == AuthType.FORM else None,
        )

    @staticmethod
    def is_login_page(html: str, url: str) -> bool:
        if LOGIN_PATH_RE.search(path_of(url)):
            return True

        title_match = TITLE_RE.search(html)
        if title_match and LOGIN_TITLE_RE.search(title_match.group(1)):
            return True

        if LOGIN_FORM_TAG_RE.search(html):
            return True

        return bool(PASSWORD_INPUT_RE.search(html)) and bool(
            IDENTITY_INPUT_RE.search(html) or LOGIN_SUBMIT_RE.search(html)
        )

    @staticmethod
    def find_password_form(html: str) -> Tag | None:
        """Return the first <form> that holds a password input."""

        if "password" not in html.lower():
            return None
        soup = BeautifulSoup(html, "lxml")
        for form in soup.find_all("form"):
            if form.find("input", attrs={"type": _is_password_type}) is not None:
                return form
        return None

    @staticmethod
    def find_login_url(html: str, current_url: str) -> str | None:
        match = LOGIN_LINK_RE.search(html)
        if not match:
            return None
        return resolve_url(current_url, match.group(1))

    @staticmethod
    def _auth_type(
        html: str,
        url: str,
        status_code: int | None,
        headers: Mapping[str, str] | None,
        *,
        has_login_form: bool,
    ) -> AuthType:
        if status_code == BASIC_AUTH_STATUS and _has_www_authenticate(html, headers):
            return AuthType.BASIC
        if has_login_form:
            return AuthType.FORM
        if OAUTH_URL_RE.search(url):
            return AuthType.OAUTH
        return AuthType.UNKNOWN


def _is_password_type(value: str | None) -> bool:
    return (value or "").strip().lower() == "password"


def _form_field_names(form: Tag) -> list[str]:
    fields: list[str] = []
    for field in form.find_all("input", attrs={"name": True}):
        name = field["name"]
        if any(marker in name.lower() for marker in EXCLUDED_FIELD_MARKERS):
            continue
        fields.append(name)
    return fields


def _has_www_authenticate(html: str, headers: Mapping[str, str] | None) -> bool:
    if WWW_AUTHENTICATE_RE.search(html):
        return True
    if headers:
        return any(key.lower() == "www-authenticate" for key in headers)
    return False


__all__ = ["AuthDetector"]
