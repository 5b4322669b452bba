#!/usr/bin/env python3

from __future__ import annotations

"""
Thin HTTP abstraction for mareatigre's upstream feeds.

Public API:
    fetch(url, timeout=10.0, ...) -> FetchResult
    fetch_with_session(warmup_url, target_url, ...) -> FetchResult
    LegacyTLSAdapter - requests adapter for servers stuck on old TLS setups

Transport failures (DNS, connect, TLS, timeout) raise FetchError; non-2xx
responses come back as a FetchResult with ok=False so callers can report the
status code.
"""

import ssl
import warnings
from typing import Any, Dict, Optional

import requests
import structlog
from requests.adapters import HTTPAdapter
from urllib3.exceptions import InsecureRequestWarning

from mareatigre.constants import DEFAULT_TIMEOUT_SEC, USER_AGENT
from mareatigre.errors import UpstreamUnavailable
from mareatigre.types import FetchResult

log = structlog.get_logger()

DEFAULT_HEADERS: Dict[str, str] = {
    "User-Agent": USER_AGENT,
    "Accept": "*/*",
    "Accept-Language": "es-ES,es;q=0.9",
    "Connection": "keep-alive",
}


class FetchError(UpstreamUnavailable):
    """Request never produced an HTTP response."""

    default_message = "Servicio temporalmente no disponible"


def _legacy_ssl_context() -> ssl.SSLContext:
    ctx = ssl.create_default_context()
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    try:
        ctx.set_ciphers("DEFAULT@SECLEVEL=0")
    except ssl.SSLError:  # pragma: no cover - depends on the OpenSSL build
        log.debug("legacy_ciphers_unsupported")
    return ctx


class LegacyTLSAdapter(HTTPAdapter):
    """
    HTTPAdapter that accepts weak ciphers and skips certificate checks.

    Some government hosts (hidro.gob.ar, comisionriodelaplata.org) still run
    TLS configurations modern OpenSSL refuses. Mount this only for those.
    """

    def init_poolmanager(self, *args: Any, **kwargs: Any) -> Any:
        kwargs["ssl_context"] = _legacy_ssl_context()
        return super().init_poolmanager(*args, **kwargs)

    def proxy_manager_for(self, *args: Any, **kwargs: Any) -> Any:
        kwargs["ssl_context"] = _legacy_ssl_context()
        return super().proxy_manager_for(*args, **kwargs)


def new_session(legacy_tls: bool = False) -> requests.Session:
    """Create a session with default headers and, optionally, legacy TLS."""
    session = requests.Session()
    session.headers.update(DEFAULT_HEADERS)
    if legacy_tls:
        session.mount("https://", LegacyTLSAdapter())
        session.verify = False
    return session


def _request(
    session: requests.Session,
    method: str,
    url: str,
    data: Optional[Dict[str, Any]],
    headers: Optional[Dict[str, str]],
    timeout: float,
) -> FetchResult:
    try:
        with warnings.catch_warnings():
            if session.verify is False:
                warnings.simplefilter("ignore", InsecureRequestWarning)
            resp = session.request(
                method,
                url,
                data=data,
                headers=headers,
                timeout=timeout,
                allow_redirects=True,
            )
    except requests.RequestException as exc:
        log.warning("fetch_failed", url=url, error=str(exc))
        raise FetchError() from exc

    ok = 200 <= resp.status_code < 300
    if not ok:
        log.warning("fetch_bad_status", url=url, status=resp.status_code)
    return FetchResult(status_code=resp.status_code, body=resp.text, ok=ok)


def fetch(
    url: str,
    timeout: float = DEFAULT_TIMEOUT_SEC,
    legacy_tls: bool = False,
    method: str = "GET",
    data: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> FetchResult:
    """
    Fetch a URL and return its status and body as text.

    Uses a throwaway session so no cookies leak between calls.
    """
    with new_session(legacy_tls=legacy_tls) as session:
        return _request(session, method, url, data, headers, timeout)


def fetch_with_session(
    warmup_url: str,
    target_url: str,
    timeout: float = DEFAULT_TIMEOUT_SEC,
    legacy_tls: bool = False,
    method: str = "POST",
    data: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> FetchResult:
    """
    GET `warmup_url`, then request `target_url` on the same session.

    The telemetry endpoint only answers once the landing page has handed out
    its cookies; the session is discarded after the second call.
    """
    with new_session(legacy_tls=legacy_tls) as session:
        _request(session, "GET", warmup_url, None, None, timeout)
        return _request(session, method, target_url, data, headers, timeout)
