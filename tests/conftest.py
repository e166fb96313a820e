"""
Shared test fixtures.

Nothing in the test suite touches the real network, runs a real
package manager or writes outside ``tmp_path``. The fakes live in
``tests/helpers.py``.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from rice.adapters.packages import BackendSession, backend_for
from rice.core.config.loader import Settings
from rice.core.engine.context import InstallContext
from rice.core.persistence.state_store import StateStore
from rice.core.services.install.checksums import ChecksumProvider
from rice.core.services.install.versions import VersionResolver
from tests.helpers import FakeDownloader, FakeReporter, FakeRunner, make_env


# ── Fixtures ────────────────────────────────────────────────────


@pytest.fixture
def tmp_state_dir(tmp_path: Path) -> Path:
    """Return a temporary directory for state files."""
    state_dir = tmp_path / "state"
    state_dir.mkdir()
    return state_dir


@pytest.fixture
def home(tmp_path: Path) -> Path:
    h = tmp_path / "home"
    h.mkdir()
    return h


@pytest.fixture
def settings(home: Path) -> Settings:
    return Settings.for_home(home, yes=True, skip_shell_change=True)


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def reporter() -> FakeReporter:
    return FakeReporter()


@pytest.fixture
def downloader() -> FakeDownloader:
    return FakeDownloader()


@pytest.fixture
def store(settings: Settings) -> StateStore:
    s = StateStore(settings.state_dir)
    s.init()
    return s


@pytest.fixture
def make_ctx(
    settings: Settings,
    store: StateStore,
    runner: FakeRunner,
    reporter: FakeReporter,
    downloader: FakeDownloader,
) -> Callable[..., InstallContext]:
    """Build an InstallContext wired to the fakes.

    Only ``settings.bin_dir`` is searched for commands.
    """

    def _make(manager: str = "apt", **overrides: object) -> InstallContext:
        env = overrides.pop("env", None) or make_env(manager)
        ctx_settings = overrides.pop("settings", settings)
        session = BackendSession(env=env, store=store, reporter=reporter, runner=runner)
        resolver = VersionResolver(
            downloader,  # type: ignore[arg-type]
            pins=ctx_settings.pins,
            cache_path=ctx_settings.version_cache_path,
        )
        return InstallContext(
            env=env,
            settings=ctx_settings,
            store=store,
            reporter=reporter,
            backend=backend_for(session),
            downloader=downloader,  # type: ignore[arg-type]
            resolver=resolver,
            checksums=ChecksumProvider(downloader),  # type: ignore[arg-type]
            runner=runner,
            extra_path=[str(ctx_settings.bin_dir)],
            base_path="",
        )

    return _make


@pytest.fixture
def ctx(make_ctx: Callable[..., InstallContext]) -> InstallContext:
    return make_ctx()
