"""
Version resolution and comparison.

Three concerns:

    - ``compare_versions`` / ``version_gte``: natural version ordering
      (``1.10 > 1.9``), never lexical string comparison.
    - ``get_installed_version``: run a command's version command and
      parse the output.
    - ``VersionResolver``: the version to install — a user pin, or the
      latest GitHub release, cached in memory and on disk.
"""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
import time
from collections.abc import Callable
from pathlib import Path

from rice.adapters.shell.command import CommandRunner, run_cmd
from rice.core.services.install.download import Downloader
from rice.core.services.install.errors import DownloadError, VersionLookupError

logger = logging.getLogger(__name__)

# ── Comparison ──────────────────────────────────────────────────

_TOKEN = re.compile(r"\d+|[A-Za-z]+")


def _tokens(version: str) -> list[int | str]:
    v = version.strip()
    if v[:1] in ("v", "V") and v[1:2].isdigit():
        v = v[1:]
    tokens: list[int | str] = [int(t) if t.isdigit() else t for t in _TOKEN.findall(v)]
    while len(tokens) > 1 and tokens[-1] == 0:
        tokens.pop()
    return tokens


def compare_versions(a: str, b: str) -> int:
    """Compare two version strings.

    Versions are split into numeric and alphabetic runs; numeric runs
    compare as integers, alphabetic runs as strings, and a number sorts
    after a word at the same position. Trailing zero components are
    ignored (``1.2 == 1.2.0``); otherwise, when one version is a prefix
    of the other, the shorter one is smaller (``1.2 < 1.2.1``).

    Returns:
        -1, 0 or 1.
    """
    ta, tb = _tokens(a), _tokens(b)
    for x, y in zip(ta, tb):
        if x == y:
            continue
        if isinstance(x, int) and isinstance(y, int):
            return -1 if x < y else 1
        if isinstance(x, str) and isinstance(y, str):
            return -1 if x < y else 1
        return 1 if isinstance(x, int) else -1
    if len(ta) == len(tb):
        return 0
    return -1 if len(ta) < len(tb) else 1


def version_gte(installed: str, wanted: str) -> bool:
    return compare_versions(installed, wanted) >= 0


# ── Local versions ──────────────────────────────────────────────

_DEFAULT_PATTERN = r"(\d+(?:\.\d+)+)"

# command → (version argv, regex with one group)
VERSION_COMMANDS: dict[str, tuple[list[str], str]] = {
    "go":      (["go", "version"],          r"go(\d+\.\d+(?:\.\d+)?)"),
    "lf":      (["lf", "-version"],         r"(r\d+)"),
    "hx":      (["hx", "--version"],        r"helix\s+(\d+\.\d+(?:\.\d+)?)"),
    "zsh":     (["zsh", "--version"],       r"zsh\s+(\d+\.\d+(?:\.\d+)?)"),
    "gh":      (["gh", "--version"],        r"gh version\s+(\d+\.\d+\.\d+)"),
    "tmux":    (["tmux", "-V"],             r"tmux\s+(\d+\.\d+[a-z]?)"),
    "lazygit": (["lazygit", "--version"],   r"version=(\d+\.\d+\.\d+)"),
    "direnv":  (["direnv", "version"],      r"(\d+\.\d+\.\d+)"),
}


def get_installed_version(
    command: str,
    *,
    runner: CommandRunner = run_cmd,
    env: dict[str, str] | None = None,
) -> str | None:
    """Get the installed version of a command.

    Returns:
        Version string, or None if the command isn't runnable or its
        output doesn't contain a version.
    """
    argv, pattern = VERSION_COMMANDS.get(command, ([command, "--version"], _DEFAULT_PATTERN))

    result = runner(argv, env=env, timeout=10)
    if result.returncode == 127:
        return None

    # Some tools print their version to stderr
    output = (result.stdout or "") + (result.stderr or "")
    match = re.search(pattern, output)
    if match:
        return match.group(1)
    return None


# ── Upstream versions ───────────────────────────────────────────

CACHE_TTL_SECONDS = 3600


class VersionResolver:
    """Decide which version of a tool to install.

    Resolution order: user pin → in-memory cache → on-disk cache
    (younger than ``CACHE_TTL_SECONDS``) → GitHub ``releases/latest``.
    """

    def __init__(
        self,
        downloader: Downloader,
        *,
        pins: dict[str, str] | None = None,
        cache_path: Path | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.downloader = downloader
        self.pins = dict(pins or {})
        self.cache_path = cache_path
        self._clock = clock
        self._memory: dict[str, str] = {}

    def resolve(self, tool: str, repo: str) -> str:
        """Return the version to install (no leading ``v``).

        Raises:
            VersionLookupError: If no version can be determined.
        """
        if tool in self.pins:
            return self.pins[tool]

        if tool in self._memory:
            return self._memory[tool]

        cached = self._read_cache().get(tool)
        if cached and self._clock() - float(cached.get("fetched_at", 0)) < CACHE_TTL_SECONDS:
            version = str(cached["version"])
            self._memory[tool] = version
            return version

        version = self._latest_release(repo)
        self._memory[tool] = version
        self._write_cache(tool, version)
        return version

    def invalidate(self) -> None:
        """Forget every cached upstream version."""
        self._memory.clear()
        if self.cache_path is not None:
            self.cache_path.unlink(missing_ok=True)

    def _latest_release(self, repo: str) -> str:
        url = f"https://api.github.com/repos/{repo}/releases/latest"
        try:
            data = self.downloader.fetch_json(url)
        except DownloadError as e:
            raise VersionLookupError(f"Could not determine latest version of {repo}: {e}") from e

        tag = data.get("tag_name", "") if isinstance(data, dict) else ""
        if not tag:
            raise VersionLookupError(f"No release tag for {repo}")
        if tag[:1] == "v" and tag[1:2].isdigit():
            tag = tag[1:]
        logger.info("Latest %s release: %s", repo, tag)
        return tag

    def _read_cache(self) -> dict[str, dict]:
        if self.cache_path is None or not self.cache_path.is_file():
            return {}
        try:
            data = json.loads(self.cache_path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            logger.debug("Ignoring unreadable version cache %s: %s", self.cache_path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _write_cache(self, tool: str, version: str) -> None:
        if self.cache_path is None:
            return
        data = self._read_cache()
        data[tool] = {"version": version, "fetched_at": self._clock()}
        try:
            self.cache_path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.cache_path.parent, prefix=".versions_", suffix=".tmp")
        except OSError as e:
            logger.warning("Cannot write version cache %s: %s", self.cache_path, e)
            return

        tmp = Path(tmp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2)
            tmp.replace(self.cache_path)
        except OSError as e:
            tmp.unlink(missing_ok=True)
            logger.warning("Cannot write version cache %s: %s", self.cache_path, e)
        except BaseException:
            tmp.unlink(missing_ok=True)
            raise
