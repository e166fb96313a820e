"""
Archive extraction, binary location and installation.
"""

from __future__ import annotations

import logging
import os
import shutil
import tarfile
import tempfile
import zipfile
from pathlib import Path

from rice.core.services.install.errors import ArchiveError, BinaryNotFoundError

logger = logging.getLogger(__name__)

# suffix → tarfile mode ("zip" handled separately)
_FORMATS: tuple[tuple[str, str], ...] = (
    (".tar.gz", "r:gz"),
    (".tgz", "r:gz"),
    (".tar.xz", "r:xz"),
    (".tar.bz2", "r:bz2"),
    (".zip", "zip"),
)

LISTING_LIMIT = 10


def archive_format(path: Path) -> str:
    """Archive mode for a file name.

    Raises:
        ArchiveError: Unknown extension.
    """
    name = path.name.lower()
    for suffix, mode in _FORMATS:
        if name.endswith(suffix):
            return mode
    raise ArchiveError(f"Unknown archive format: {path.name}")


def extract_archive(archive: Path, dest: Path) -> None:
    """Unpack ``archive`` into ``dest``.

    Members that would land outside ``dest`` (absolute paths, ``..``,
    links pointing out) are rejected.
    """
    mode = archive_format(archive)
    dest.mkdir(parents=True, exist_ok=True)

    try:
        if mode == "zip":
            with zipfile.ZipFile(archive) as zf:
                root = dest.resolve()
                for member in zf.namelist():
                    target = (dest / member).resolve()
                    if not target.is_relative_to(root):
                        raise ArchiveError(f"Unsafe path in archive: {member}")
                zf.extractall(dest)
        else:
            with tarfile.open(archive, mode) as tf:
                tf.extractall(dest, filter="data")
    except (tarfile.TarError, zipfile.BadZipFile, OSError, EOFError) as e:
        raise ArchiveError(f"Could not extract {archive.name}: {e}") from e

    logger.debug("Extracted %s → %s", archive, dest)


def archive_listing(root: Path, limit: int = LISTING_LIMIT) -> list[str]:
    """First ``limit`` files under ``root``, relative paths, sorted."""
    files = sorted(p.relative_to(root).as_posix() for p in root.rglob("*") if p.is_file())
    return files[:limit]


def locate_binary(extract_dir: Path, relative: str) -> Path:
    """Find the binary in an extracted archive.

    Tries the templated path first, then any regular file with the
    same basename anywhere in the tree.

    Raises:
        BinaryNotFoundError: With a truncated archive listing.
    """
    direct = extract_dir / relative
    if direct.is_file():
        return direct

    basename = Path(relative).name
    matches = sorted(p for p in extract_dir.rglob(basename) if p.is_file())
    if matches:
        logger.debug("Binary %s found by name at %s", relative, matches[0])
        return matches[0]

    raise BinaryNotFoundError(relative, archive_listing(extract_dir))


def install_binary(source: Path, bin_dir: Path, name: str) -> Path:
    """Copy ``source`` to ``bin_dir/name`` and mark it executable.

    The copy goes to a temp file in ``bin_dir`` first and is renamed
    into place, so a running old binary is replaced atomically.
    """
    bin_dir.mkdir(parents=True, exist_ok=True)
    dest = bin_dir / name

    fd, tmp_name = tempfile.mkstemp(dir=bin_dir, prefix=f".{name}.", suffix=".tmp")
    os.close(fd)
    tmp = Path(tmp_name)
    try:
        shutil.copyfile(source, tmp)
        tmp.chmod(0o755)
        tmp.replace(dest)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise

    logger.info("Installed: %s", dest)
    return dest
