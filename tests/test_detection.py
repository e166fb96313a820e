"""
Tests for environment detection.
"""

from pathlib import Path

import pytest

from rice.core.services.detection import (
    UnsupportedEnvironmentError,
    detect_arch,
    detect_environment,
    detect_os,
    detect_package_manager,
    parse_os_release,
)

DEBIAN = 'PRETTY_NAME="Debian GNU/Linux 12 (bookworm)"\nID=debian\nVERSION_ID="12"\n'
UBUNTU = 'NAME="Ubuntu"\nID=ubuntu\nID_LIKE=debian\nVERSION_ID="24.04"\n'
MINT = 'NAME="Linux Mint"\nID=linuxmint\nID_LIKE="ubuntu debian"\nVERSION_ID="21.3"\n'
ARCH = 'NAME="Arch Linux"\nID=arch\nBUILD_ID=rolling\n'
FEDORA = 'NAME="Fedora Linux"\nID=fedora\nVERSION_ID=40\n'
ALPINE = 'NAME="Alpine Linux"\nID=alpine\nVERSION_ID=3.20.0\n'


def _release(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "os-release"
    path.write_text(text)
    return path


def _which(*present: str):
    return lambda cmd: f"/usr/bin/{cmd}" if cmd in present else None


class TestParseOsRelease:
    def test_quotes_and_comments(self):
        info = parse_os_release('# comment\nID="debian"\nVERSION_ID=\'12\'\n\nBROKEN\n')
        assert info == {"ID": "debian", "VERSION_ID": "12"}


class TestDetectOs:
    @pytest.mark.parametrize("text, expected", [
        (DEBIAN, ("debian", "12")),
        (UBUNTU, ("ubuntu", "24.04")),
        (MINT, ("debian", "21.3")),
        (ARCH, ("arch", "rolling")),
        (FEDORA, ("fedora", "40")),
        (ALPINE, ("unknown", "unknown")),
    ])
    def test_linux(self, tmp_path: Path, text: str, expected: tuple[str, str]):
        assert detect_os("Linux", _release(tmp_path, text)) == expected

    def test_no_os_release(self, tmp_path: Path):
        assert detect_os("Linux", tmp_path / "missing") == ("unknown", "unknown")

    def test_macos(self, tmp_path: Path):
        assert detect_os("Darwin", tmp_path / "missing")[0] == "macos"


class TestDetectArch:
    @pytest.mark.parametrize("machine, expected", [
        ("x86_64", ("x86_64", "amd64", "amd64")),
        ("amd64", ("x86_64", "amd64", "amd64")),
        ("aarch64", ("aarch64", "arm64", "arm64")),
        ("arm64", ("aarch64", "arm64", "arm64")),
    ])
    def test_supported(self, machine: str, expected):
        assert detect_arch(machine) == expected

    def test_unsupported(self):
        with pytest.raises(UnsupportedEnvironmentError, match="armv7l"):
            detect_arch("armv7l")


class TestDetectPackageManager:
    def test_order(self):
        assert detect_package_manager(_which("brew", "apt-get")) == "apt"
        assert detect_package_manager(_which("pacman")) == "pacman"
        assert detect_package_manager(_which()) is None


class TestDetectEnvironment:
    def test_debian_user(self, tmp_path: Path):
        env = detect_environment(
            system="Linux", machine="x86_64", euid=1000,
            os_release=_release(tmp_path, DEBIAN), which=_which("apt-get", "sudo"),
        )
        assert env.os == "debian"
        assert env.package_manager == "apt"
        assert env.arch_alt == "amd64"
        assert env.is_root is False
        assert env.sudo == ("sudo",)

    def test_root_needs_no_sudo(self, tmp_path: Path):
        env = detect_environment(
            system="Linux", machine="aarch64", euid=0,
            os_release=_release(tmp_path, UBUNTU), which=_which("apt-get"),
        )
        assert env.is_root
        assert env.sudo == ()
        assert env.arch == "aarch64"

    def test_no_sudo(self, tmp_path: Path):
        with pytest.raises(UnsupportedEnvironmentError, match="sudo"):
            detect_environment(
                system="Linux", machine="x86_64", euid=1000,
                os_release=_release(tmp_path, DEBIAN), which=_which("apt-get"),
            )

    def test_unknown_os(self, tmp_path: Path):
        with pytest.raises(UnsupportedEnvironmentError, match="Unsupported OS"):
            detect_environment(
                system="Linux", machine="x86_64", euid=0,
                os_release=_release(tmp_path, ALPINE), which=_which("apt-get"),
            )

    def test_no_package_manager(self, tmp_path: Path):
        with pytest.raises(UnsupportedEnvironmentError, match="package manager"):
            detect_environment(
                system="Linux", machine="x86_64", euid=0,
                os_release=_release(tmp_path, DEBIAN), which=_which(),
            )

    def test_preview_os_warns(self, tmp_path: Path, caplog):
        with caplog.at_level("WARNING"):
            env = detect_environment(
                system="Linux", machine="x86_64", euid=0,
                os_release=_release(tmp_path, FEDORA), which=_which("dnf"),
            )
        assert env.package_manager == "dnf"
        assert "not fully tested" in caplog.text
