"""
Install errors — one exception type per failure class of a unit.

Every error carries ``reason``, the short text stored in the tool's
failure record (e.g. ``"checksum unavailable"``). Errors with
``recovery`` steps are shown to the user as an error box; the rest
as a one-line failure.

All of these are caught at the unit boundary. None of them aborts a
run.
"""

from __future__ import annotations


class InstallError(Exception):
    """Base class for per-unit install failures."""

    reason = "install failed"
    component = "install"
    operation = "failed"

    def __init__(self, message: str = "", *, reason: str | None = None) -> None:
        super().__init__(message or self.reason)
        if reason is not None:
            self.reason = reason

    @property
    def recovery(self) -> list[str]:
        """Ordered recovery suggestions; empty means no error box."""
        return []


class VersionLookupError(InstallError):
    reason = "version lookup failed"


class ChecksumUnavailableError(InstallError):
    """Upstream publishes no checksum for the artifact."""

    reason = "checksum unavailable"
    component = "checksum"
    operation = "unavailable"

    def __init__(self, message: str = "", *, repo: str = "", version: str = "") -> None:
        self.repo = repo
        self.version = version
        super().__init__(message)

    @property
    def recovery(self) -> list[str]:
        steps = ["Pin a version that publishes checksums in ~/.config/rice/config.yml"]
        if self.repo:
            steps.append(f"Check the release page: https://github.com/{self.repo}/releases/tag/v{self.version}")
        return steps


class ChecksumMismatchError(InstallError):
    """Downloaded content doesn't match the published digest."""

    reason = "checksum mismatch"
    component = "checksum"
    operation = "verification failed"

    def __init__(self, path: str, expected: str, actual: str) -> None:
        self.path = path
        self.expected = expected
        self.actual = actual
        name = path.rsplit("/", 1)[-1]
        super().__init__(
            f"SHA256 mismatch for {name} (expected {expected}, actual {actual})"
        )

    @property
    def recovery(self) -> list[str]:
        return [
            f"Expected: {self.expected}",
            f"Actual:   {self.actual}",
            "Remove the cached file and re-run rice",
            f"rm -f '{self.path}' && rice",
        ]


class InsecureURLError(InstallError):
    """URL doesn't use HTTPS. Raised before any network call."""

    reason = "insecure url"

    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__(f"URL must use HTTPS: {url}")


class DownloadError(InstallError):
    reason = "download failed"
    component = "download"

    def __init__(
        self,
        url: str,
        message: str = "",
        *,
        attempts: int = 0,
        status: int | None = None,
    ) -> None:
        self.url = url
        self.attempts = attempts
        self.status = status
        super().__init__(message or f"Could not download: {url}")

    @property
    def not_found(self) -> bool:
        return self.status == 404

    @property
    def recovery(self) -> list[str]:
        return [
            "Check your internet connection",
            "Try again in a few minutes",
            f"Check if the URL is accessible: curl -I '{self.url}'",
        ]


class ArchiveError(InstallError):
    reason = "extraction failed"


class BinaryNotFoundError(InstallError):
    reason = "binary not found in archive"

    def __init__(self, expected: str, listing: list[str]) -> None:
        self.expected = expected
        self.listing = listing
        super().__init__(f"Binary not found in archive: {expected}")
