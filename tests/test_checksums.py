"""
Tests for checksum manifests — parsing and fetching.
"""

import pytest

from rice.core.services.install.checksums import ChecksumProvider, parse_manifest, release_urls
from rice.core.services.install.errors import ChecksumUnavailableError, DownloadError
from tests.helpers import FakeDownloader

A = "a" * 64
B = "b" * 64


class TestReleaseUrls:
    def test_v_prefix_first(self):
        assert release_urls("cli/cli", "2.50.0", "gh_2.50.0_checksums.txt") == [
            "https://github.com/cli/cli/releases/download/v2.50.0/gh_2.50.0_checksums.txt",
            "https://github.com/cli/cli/releases/download/2.50.0/gh_2.50.0_checksums.txt",
        ]


class TestParseManifest:
    def test_sha256sum_format(self):
        text = f"{A}  lazygit_0.44.1_Linux_x86_64.tar.gz\n{B}  lazygit_0.44.1_Linux_arm64.tar.gz\n"
        assert parse_manifest(text, "lazygit_0.44.1_Linux_arm64.tar.gz") == B

    def test_binary_marker(self):
        assert parse_manifest(f"{A} *uv.tar.gz\n{B} *other\n", "uv.tar.gz") == A

    def test_bsd_format(self):
        text = f"SHA256 (lf-linux-amd64.tar.gz) = {A}\nSHA256 (lf-linux-arm64.tar.gz) = {B}\n"
        assert parse_manifest(text, "lf-linux-arm64.tar.gz") == B

    def test_bare_digest(self):
        assert parse_manifest(f"{A}\n", "anything.tar.xz") == A

    def test_path_prefix_ignored(self):
        assert parse_manifest(f"{A}  dist/uv.tar.gz\n{B}  x\n", "uv.tar.gz") == A

    def test_no_entry(self):
        assert parse_manifest(f"{A}  other.tar.gz\n{B}  more.tar.gz\n", "uv.tar.gz") is None

    def test_garbage(self):
        assert parse_manifest("<html>Not Found</html>", "uv.tar.gz") is None

    def test_exact_name_only(self):
        text = f"{A}  uv.tar.gz.sig\n{B}  xuv.tar.gz\n"
        assert parse_manifest(text, "uv.tar.gz") is None


class TestChecksumProvider:
    def test_v_tag(self):
        url = "https://github.com/cli/cli/releases/download/v2.50.0/sums.txt"
        dl = FakeDownloader({url: f"{A}  gh.tar.gz\n{B}  x\n".encode()})
        assert ChecksumProvider(dl).fetch_checksum("cli/cli", "2.50.0", "sums.txt", "gh.tar.gz") == A  # type: ignore[arg-type]

    def test_bare_tag_fallback(self):
        url = "https://github.com/gokcehan/lf/releases/download/r32/lf.tar.gz.sha256"
        dl = FakeDownloader({url: f"{A}\n".encode()})
        provider = ChecksumProvider(dl)  # type: ignore[arg-type]
        assert provider.fetch_checksum("gokcehan/lf", "r32", "lf.tar.gz.sha256", "lf.tar.gz") == A
        assert dl.requests[0].endswith("/vr32/lf.tar.gz.sha256")

    def test_no_manifest(self):
        provider = ChecksumProvider(FakeDownloader())  # type: ignore[arg-type]
        with pytest.raises(ChecksumUnavailableError) as exc:
            provider.fetch_checksum("a/b", "1.0", "sums.txt", "b.tar.gz")
        assert exc.value.reason == "checksum unavailable"

    def test_transport_failure_not_retried_on_bare_tag(self):
        url = "https://github.com/a/b/releases/download/v1.0/sums.txt"
        dl = FakeDownloader()
        dl.failing.add(url)
        with pytest.raises(DownloadError):
            ChecksumProvider(dl).fetch_checksum("a/b", "1.0", "sums.txt", "b.tar.gz")  # type: ignore[arg-type]
        assert dl.requests == [url]

    def test_manifest_without_entry(self):
        url = "https://github.com/a/b/releases/download/v1.0/sums.txt"
        dl = FakeDownloader({url: f"{A}  other\n{B}  more\n".encode()})
        with pytest.raises(ChecksumUnavailableError):
            ChecksumProvider(dl).fetch_checksum("a/b", "1.0", "sums.txt", "b.tar.gz")  # type: ignore[arg-type]
