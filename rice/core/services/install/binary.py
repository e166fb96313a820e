"""
GitHub release binary install — the full acquisition pipeline.

    resolve version → artifact name → published checksum
        → download (v-tag, then bare tag) → verify → extract
        → locate binary → install into bin_dir → record

Every failure is an ``InstallError``; it is recorded against the tool
with its ``reason`` and shown to the user, then the pipeline returns a
failed ``InstallResult``. Nothing here raises past the unit.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

from rice.core.models.catalog import DownloadSpec
from rice.core.models.results import InstallResult
from rice.core.services.install.archive import extract_archive, install_binary, locate_binary
from rice.core.services.install.checksums import release_urls
from rice.core.services.install.download import fetch_artifact
from rice.core.services.install.errors import (
    BinaryNotFoundError,
    DownloadError,
    InstallError,
)

if TYPE_CHECKING:
    from rice.core.engine.context import InstallContext

logger = logging.getLogger(__name__)


def _download_release(ctx: InstallContext, spec: DownloadSpec, version: str, artifact: str, digest: str) -> Path:
    """Fetch the artifact from the ``v`` tag, or the bare tag on a 404.

    Transport failures are final: the downloader already spent its
    retries on the first URL.
    """
    cache_path = ctx.settings.cache_dir / artifact
    tagged, *fallbacks = release_urls(spec.repo, version, artifact)
    try:
        return fetch_artifact(ctx.downloader, tagged, digest, cache_path)
    except DownloadError as e:
        if not (e.not_found and fallbacks):
            raise
        logger.info("No release asset at %s, trying %s", tagged, fallbacks[0])
    return fetch_artifact(ctx.downloader, fallbacks[0], digest, cache_path)


def _unpack(ctx: InstallContext, spec: DownloadSpec, version: str, artifact_path: Path) -> Path:
    """Extract (or, for raw artifacts, take as-is) and install the binary."""
    name = spec.command_name
    if spec.raw:
        return install_binary(artifact_path, ctx.settings.bin_dir, name)

    extract_dir = Path(tempfile.mkdtemp(prefix=f"rice-{spec.tool}-"))
    try:
        extract_archive(artifact_path, extract_dir)
        source = locate_binary(extract_dir, spec.binary_in_archive(version, ctx.env))
        return install_binary(source, ctx.settings.bin_dir, name)
    finally:
        shutil.rmtree(extract_dir, ignore_errors=True)


def _report_failure(ctx: InstallContext, tool: str, error: InstallError) -> None:
    if error.recovery:
        ctx.reporter.error_box(error.component, error.operation, str(error), error.recovery)
        return

    ctx.reporter.error(f"{tool}: {error}")
    if isinstance(error, BinaryNotFoundError) and error.listing:
        ctx.reporter.detail("Archive contents:")
        for entry in error.listing:
            ctx.reporter.detail(f"  {entry}")


def install_github_binary(ctx: InstallContext, spec: DownloadSpec, version: str | None = None) -> InstallResult:
    """Install ``spec``'s release artifact.

    Args:
        ctx: Install context.
        spec: Where the artifact lives and how it is laid out.
        version: Already-resolved version (resolved here when None).
    """
    tool = spec.tool
    ctx.reporter.installing(tool)

    try:
        if version is None:
            version = ctx.resolver.resolve(tool, spec.repo)
        artifact = spec.artifact_name(version, ctx.env)
        manifest = spec.manifest_name(version, ctx.env)

        digest = ctx.checksums.fetch_checksum(spec.repo, version, manifest, artifact)
        artifact_path = _download_release(ctx, spec, version, artifact, digest)
        dest = _unpack(ctx, spec, version, artifact_path)
    except InstallError as e:
        logger.info("%s install failed: %s", tool, e)
        _report_failure(ctx, tool, e)
        ctx.store.record_tool_failed(tool, e.reason)
        return InstallResult.failure(tool, e.reason, method="binary")

    logger.debug("%s %s installed at %s", tool, version, dest)
    ctx.reporter.ok(tool, version)
    ctx.store.record_tool_success(tool, version, "binary")
    return InstallResult.success(tool, version, "binary")
