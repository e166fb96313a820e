"""
Test doubles for subprocess, network and output.
"""

from __future__ import annotations

import hashlib
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path

from rice.adapters.shell.command import CmdResult
from rice.core.models.environment import Environment
from rice.core.services.install.download import require_https
from rice.core.services.install.errors import DownloadError


def sha256(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def make_executable(directory: Path, name: str) -> Path:
    """Create a dummy executable so ``which`` finds ``name``."""
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    path.write_text("#!/bin/sh\nexit 0\n")
    path.chmod(0o755)
    return path


def make_env(manager: str = "apt", *, root: bool = False, arch: str = "x86_64") -> Environment:
    alt = "amd64" if arch == "x86_64" else "arm64"
    return Environment(
        os={"apt": "debian", "dnf": "fedora", "pacman": "arch", "brew": "macos"}[manager],
        os_version="12",
        arch=arch,
        arch_alt=alt,
        arch_go=alt,
        package_manager=manager,
        is_root=root,
        sudo=() if root else ("sudo",),
    )


# ── Fakes ───────────────────────────────────────────────────────


Handler = Callable[[list[str]], "CmdResult | tuple[int, str] | None"]


class FakeRunner:
    """Stands in for ``run_cmd``.

    Rules are matched in order against the start of argv (sudo
    stripped); the first match answers. Unmatched commands "succeed"
    with empty output unless ``default_code`` says otherwise.
    """

    def __init__(self, default_code: int = 0) -> None:
        self.calls: list[list[str]] = []
        self.envs: list[dict[str, str]] = []
        self.captures: list[bool] = []
        self.rules: list[tuple[list[str], Handler]] = []
        self.default_code = default_code

    def on(self, prefix: Sequence[str], code: int = 0, stdout: str = "", stderr: str = "") -> FakeRunner:
        self.rules.append((list(prefix), lambda argv: CmdResult(argv, code, stdout, stderr)))
        return self

    def on_call(self, prefix: Sequence[str], handler: Handler) -> FakeRunner:
        self.rules.append((list(prefix), handler))
        return self

    def __call__(
        self,
        argv: Sequence[str],
        *,
        env: Mapping[str, str] | None = None,
        cwd: str | None = None,
        timeout: int = 600,
        capture: bool = True,
    ) -> CmdResult:
        argv = [str(a) for a in argv]
        self.calls.append(argv)
        self.envs.append(dict(env or {}))
        self.captures.append(capture)
        bare = argv[1:] if argv and argv[0] == "sudo" else argv
        for prefix, handler in self.rules:
            if bare[: len(prefix)] == prefix:
                answer = handler(argv)
                if answer is None:
                    continue
                if isinstance(answer, tuple):
                    return CmdResult(argv, answer[0], answer[1])
                return answer
        return CmdResult(argv, self.default_code)

    def commands(self) -> list[str]:
        return [" ".join(c) for c in self.calls]

    def ran(self, *prefix: str) -> bool:
        n = len(prefix)
        return any(c[:n] == list(prefix) or c[1 : n + 1] == list(prefix) for c in self.calls)


class FakeReporter:
    """Records every reporter call as ``(method, args)``."""

    def __init__(self) -> None:
        self.events: list[tuple[str, tuple]] = []

    def __getattr__(self, name: str) -> Callable[..., None]:
        if name.startswith("_"):
            raise AttributeError(name)

        def record(*args: object, **kwargs: object) -> None:
            self.events.append((name, args + tuple(kwargs.values())))

        return record

    def named(self, method: str) -> list[tuple]:
        return [args for name, args in self.events if name == method]


class FakeDownloader:
    """In-memory release server.

    ``files`` maps URL → body. Missing URLs answer 404; URLs in
    ``failing`` answer with a transport failure.
    """

    def __init__(self, files: dict[str, bytes] | None = None, json_data: dict[str, object] | None = None) -> None:
        self.files = dict(files or {})
        self.json_data = dict(json_data or {})
        self.failing: set[str] = set()
        self.requests: list[str] = []

    def _get(self, url: str) -> bytes:
        require_https(url)
        self.requests.append(url)
        if url in self.failing:
            raise DownloadError(url, f"Could not download: {url} (connection refused)", attempts=3)
        if url not in self.files:
            raise DownloadError(url, f"HTTP 404 for {url}", attempts=1, status=404)
        return self.files[url]

    def fetch(self, url: str, *, headers: dict[str, str] | None = None) -> bytes:
        return self._get(url)

    def fetch_json(self, url: str) -> object:
        require_https(url)
        self.requests.append(url)
        if url not in self.json_data:
            raise DownloadError(url, f"HTTP 404 for {url}", attempts=1, status=404)
        return self.json_data[url]

    def download(self, url: str, dest: Path) -> Path:
        data = self._get(url)
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(data)
        return dest

    def downloads(self) -> list[str]:
        return [u for u in self.requests if "/releases/download/" in u]


