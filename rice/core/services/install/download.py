"""
Download and checksum verification.

HTTPS-only fetching with a bounded retry, SHA-256 verification, and a
download cache that only ever serves content matching the expected
digest.

Retry policy:
    - transport failures (connection errors, timeouts, HTTP 5xx/429)
      are retried, MAX_ATTEMPTS in total, BACKOFF_SECONDS apart
    - other HTTP errors (404, 403, ...) fail immediately
    - checksum mismatches are never retried
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import tempfile
import time
import urllib.error
import urllib.parse
import urllib.request
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

from rice import __version__
from rice.core.services.install.errors import (
    ChecksumMismatchError,
    DownloadError,
    InsecureURLError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_ATTEMPTS = 3
BACKOFF_SECONDS = 2.0
CONNECT_TIMEOUT = 30

_USER_AGENT = f"rice/{__version__}"
_GITHUB_API_HOST = "api.github.com"
_CHUNK = 64 * 1024


def require_https(url: str) -> None:
    """Reject any URL whose scheme isn't ``https``.

    Raises:
        InsecureURLError: Before any network activity.
    """
    if urllib.parse.urlsplit(url).scheme.lower() != "https":
        raise InsecureURLError(url)


def sha256_file(path: Path) -> str:
    """Hex SHA-256 digest of a file's content."""
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK), b""):
            h.update(chunk)
    return h.hexdigest()


def verify_checksum(path: Path, expected: str) -> None:
    """Compare a file's digest with ``expected``, exactly.

    Raises:
        ChecksumMismatchError: With both digests.
    """
    actual = sha256_file(path)
    if actual != expected:
        raise ChecksumMismatchError(str(path), expected, actual)
    logger.debug("Checksum verified: %s", expected)


def _is_transient(exc: Exception) -> bool:
    if isinstance(exc, urllib.error.HTTPError):
        return exc.code >= 500 or exc.code == 429
    return isinstance(exc, (urllib.error.URLError, TimeoutError, ConnectionError, OSError))


class Downloader:
    """HTTPS fetcher with bounded retry.

    Args:
        token: GitHub token, sent only to api.github.com.
        timeout: Per-request timeout in seconds.
        sleep: Backoff sleep (replaced in tests).
    """

    def __init__(
        self,
        *,
        token: str | None = None,
        timeout: int = 300,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.token = token
        self.timeout = timeout
        self._sleep = sleep

    def _request(self, url: str, headers: dict[str, str] | None = None) -> urllib.request.Request:
        all_headers = {"User-Agent": _USER_AGENT}
        if self.token and urllib.parse.urlsplit(url).hostname == _GITHUB_API_HOST:
            all_headers["Authorization"] = f"Bearer {self.token}"
        all_headers.update(headers or {})
        return urllib.request.Request(url, headers=all_headers)

    def _with_retry(self, url: str, action: Callable[[], T]) -> T:
        require_https(url)

        last_error = ""
        for attempt in range(1, MAX_ATTEMPTS + 1):
            logger.info("Downloading: %s (attempt %d)", url, attempt)
            try:
                return action()
            except urllib.error.HTTPError as e:
                if not _is_transient(e):
                    raise DownloadError(
                        url, f"HTTP {e.code} for {url}", attempts=attempt, status=e.code,
                    ) from e
                last_error = f"HTTP {e.code}"
            except (urllib.error.URLError, TimeoutError, ConnectionError, OSError) as e:
                last_error = str(getattr(e, "reason", e))

            if attempt < MAX_ATTEMPTS:
                logger.info("Download failed (%s), retrying in %ss...", last_error, BACKOFF_SECONDS)
                self._sleep(BACKOFF_SECONDS)

        raise DownloadError(
            url,
            f"Could not download: {url} ({last_error})",
            attempts=MAX_ATTEMPTS,
        )

    def fetch(self, url: str, *, headers: dict[str, str] | None = None) -> bytes:
        """Fetch a (small) resource into memory."""

        def _get() -> bytes:
            with urllib.request.urlopen(self._request(url, headers), timeout=CONNECT_TIMEOUT) as resp:
                return resp.read()

        return self._with_retry(url, _get)

    def fetch_json(self, url: str) -> Any:
        data = self.fetch(url, headers={"Accept": "application/vnd.github+json"})
        try:
            return json.loads(data)
        except json.JSONDecodeError as e:
            raise DownloadError(url, f"Invalid JSON from {url}: {e}") from e

    def download(self, url: str, dest: Path) -> Path:
        """Stream ``url`` to ``dest``.

        The body is written to a temp file beside ``dest`` and renamed
        into place, so ``dest`` never holds a partial download.
        """
        dest.parent.mkdir(parents=True, exist_ok=True)

        def _get() -> Path:
            fd, tmp_name = tempfile.mkstemp(dir=dest.parent, prefix=f".{dest.name}.", suffix=".part")
            tmp = Path(tmp_name)
            try:
                with os.fdopen(fd, "wb") as out, urllib.request.urlopen(
                    self._request(url), timeout=self.timeout,
                ) as resp:
                    for chunk in iter(lambda: resp.read(_CHUNK), b""):
                        out.write(chunk)
                tmp.replace(dest)
            except BaseException:
                tmp.unlink(missing_ok=True)
                raise
            return dest

        return self._with_retry(url, _get)


def fetch_artifact(
    downloader: Downloader,
    url: str,
    expected: str,
    cache_path: Path,
) -> Path:
    """Return a verified copy of an artifact, downloading it if needed.

    A cached file is reused only when it matches ``expected``;
    otherwise it is deleted and fetched again. A fresh download that
    fails verification is deleted before the error propagates.

    Raises:
        InsecureURLError, DownloadError, ChecksumMismatchError
    """
    require_https(url)

    if cache_path.is_file():
        try:
            verify_checksum(cache_path, expected)
            logger.info("Using cached download: %s", cache_path)
            return cache_path
        except ChecksumMismatchError:
            logger.info("Cached file checksum mismatch, re-downloading: %s", cache_path)
            cache_path.unlink(missing_ok=True)

    downloader.download(url, cache_path)

    try:
        verify_checksum(cache_path, expected)
    except ChecksumMismatchError:
        cache_path.unlink(missing_ok=True)
        raise

    return cache_path
