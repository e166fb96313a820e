"""
Checksum provider — expected digests from upstream release manifests.

Understands the manifest formats projects actually publish:

    <hex>  name          (sha256sum)
    <hex> *name          (sha256sum --binary)
    SHA256 (name) = <hex>  (BSD / shasum --tag)
    <hex>                (per-artifact .sha256 file)

No manifest, or no entry for the artifact, is a hard failure: rice
never installs an unverified binary.
"""

from __future__ import annotations

import logging
import re

from rice.core.services.install.download import Downloader
from rice.core.services.install.errors import ChecksumUnavailableError, DownloadError

logger = logging.getLogger(__name__)

_HEX = re.compile(r"^[0-9a-fA-F]{64}$")
_BSD = re.compile(r"^SHA256\s*\((?P<name>.+)\)\s*=\s*(?P<digest>[0-9a-fA-F]{64})$")


def release_urls(repo: str, version: str, filename: str) -> list[str]:
    """Release asset URLs to try: tag with ``v`` prefix, then without."""
    base = f"https://github.com/{repo}/releases/download"
    return [
        f"{base}/v{version}/{filename}",
        f"{base}/{version}/{filename}",
    ]


def parse_manifest(text: str, artifact: str) -> str | None:
    """Find the digest for ``artifact`` in a manifest body."""
    lines = [ln.strip() for ln in text.splitlines() if ln.strip()]

    # A bare digest file describes exactly one artifact.
    if len(lines) == 1 and _HEX.match(lines[0].split()[0]) and len(lines[0].split()) == 1:
        return lines[0]

    for line in lines:
        bsd = _BSD.match(line)
        if bsd:
            if bsd.group("name").rsplit("/", 1)[-1] == artifact:
                return bsd.group("digest")
            continue

        parts = line.split(None, 1)
        if len(parts) != 2 or not _HEX.match(parts[0]):
            continue
        name = parts[1].lstrip("*").strip()
        if name.rsplit("/", 1)[-1] == artifact:
            return parts[0]

    return None


class ChecksumProvider:
    """Fetch and parse release checksum manifests."""

    def __init__(self, downloader: Downloader) -> None:
        self.downloader = downloader

    def fetch_checksum(self, repo: str, version: str, manifest: str, artifact: str) -> str:
        """Return the published SHA-256 of ``artifact``.

        Raises:
            ChecksumUnavailableError: No manifest or no matching entry.
            DownloadError: The manifest couldn't be fetched for a reason
                other than 404.
        """
        for url in release_urls(repo, version, manifest):
            try:
                body = self.downloader.fetch(url)
            except DownloadError as e:
                if not e.not_found:
                    raise
                logger.info("No checksum manifest at %s", url)
                continue

            digest = parse_manifest(body.decode("utf-8", errors="replace"), artifact)
            if digest:
                return digest
            logger.info("Manifest %s has no entry for %s", url, artifact)

        raise ChecksumUnavailableError(
            f"No published checksum for {artifact} ({repo} {version})",
            repo=repo,
            version=version,
        )
