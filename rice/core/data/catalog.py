"""
The rice catalogue — every phase and unit, in install order.

Pure data. ``build_phases()`` returns fresh ``PhaseDefinition`` objects;
the scheduler runs them in index order.

Release artifact templates use the placeholders documented in
``rice.core.models.catalog``. Projects whose asset names don't follow
the default ``{ARCH}`` (``x86_64``/``aarch64``) declare ``arch_map``.
"""

from __future__ import annotations

from rice.core.engine.scheduler import PhaseDefinition
from rice.core.models.catalog import DownloadSpec
from rice.core.services.install.units import (
    BinaryUnit,
    ConfigUnit,
    GitCloneUnit,
    PackageUnit,
    UpstreamScriptUnit,
)
from rice.core.services.shell import change_default_shell, ensure_runtime_paths

# Commands the verification pass expects on the search path.
VERIFY_COMMANDS: tuple[str, ...] = (
    "zsh", "cargo", "go", "bun", "uv",
    "rg", "fd", "bat", "fzf", "zoxide",
    "hx", "lazygit", "delta", "lf", "jq", "tmux",
)

OMZ_CUSTOM = ".oh-my-zsh/custom"


# ── Release binaries ────────────────────────────────────────────

UV = DownloadSpec(
    repo="astral-sh/uv",
    tool="uv",
    archive="uv-{ARCH}-unknown-linux-gnu.tar.gz",
    checksum_file="uv-{ARCH}-unknown-linux-gnu.tar.gz.sha256",
    binary_path="uv-{ARCH}-unknown-linux-gnu/uv",
)

HELIX = DownloadSpec(
    repo="helix-editor/helix",
    tool="helix",
    command="hx",
    archive="helix-{VERSION}-{ARCH}-linux.tar.xz",
    checksum_file="helix-{VERSION}-{ARCH}-linux.tar.xz.sha256",
    binary_path="helix-{VERSION}-{ARCH}-linux/hx",
)

LAZYGIT = DownloadSpec(
    repo="jesseduffield/lazygit",
    tool="lazygit",
    archive="lazygit_{VERSION}_Linux_{ARCH}.tar.gz",
    checksum_file="checksums.txt",
    arch_map={"aarch64": "arm64"},
)

GH = DownloadSpec(
    repo="cli/cli",
    tool="gh",
    archive="gh_{VERSION}_linux_{ARCH_GO}.tar.gz",
    checksum_file="gh_{VERSION}_checksums.txt",
    binary_path="gh_{VERSION}_linux_{ARCH_GO}/bin/gh",
)

LF = DownloadSpec(
    repo="gokcehan/lf",
    tool="lf",
    archive="lf-linux-{ARCH_GO}.tar.gz",
    checksum_file="lf-linux-{ARCH_GO}.tar.gz.sha256",
)


def build_phases() -> list[PhaseDefinition]:
    """All install phases, indexed from 0."""
    return [
        PhaseDefinition(0, "Prerequisites", [
            PackageUnit("curl", "curl", command="curl"),
            PackageUnit("git", "git", command="git"),
            PackageUnit("unzip", "unzip", command="unzip"),
            PackageUnit("xz", {"apt": "xz-utils", "dnf": "xz", "pacman": "xz", "brew": "xz"}, command="xz"),
            PackageUnit("build-tools", {"apt": "build-essential", "dnf": "gcc", "pacman": "base-devel"}),
            PackageUnit("ca-certificates", {"apt": "ca-certificates", "dnf": "ca-certificates", "pacman": "ca-certificates"}),
            PackageUnit("file", {"apt": "file", "dnf": "file", "pacman": "file"}, command="file"),
        ]),
        PhaseDefinition(1, "Runtimes", [
            UpstreamScriptUnit(
                "rust", "https://sh.rustup.rs",
                args=("-y", "--no-modify-path"),
                command="cargo",
            ),
            PackageUnit("go", {"apt": "golang-go", "dnf": "golang", "pacman": "go", "brew": "go"}, command="go"),
            UpstreamScriptUnit("bun", "https://bun.sh/install", interpreter=("bash",), command="bun"),
            BinaryUnit(UV, packages={"brew": "uv"}),
        ], after=ensure_runtime_paths),
        PhaseDefinition(2, "Shell", [
            PackageUnit("zsh", "zsh", command="zsh"),
            UpstreamScriptUnit(
                "oh-my-zsh",
                "https://raw.githubusercontent.com/ohmyzsh/ohmyzsh/master/tools/install.sh",
                args=("--unattended",),
                env={"RUNZSH": "no", "CHSH": "no", "KEEP_ZSHRC": "yes"},
                marker=".oh-my-zsh",
            ),
            GitCloneUnit(
                "powerlevel10k", "https://github.com/romkatv/powerlevel10k.git",
                f"{OMZ_CUSTOM}/themes/powerlevel10k",
            ),
            GitCloneUnit(
                "zsh-autosuggestions", "https://github.com/zsh-users/zsh-autosuggestions.git",
                f"{OMZ_CUSTOM}/plugins/zsh-autosuggestions",
            ),
            GitCloneUnit(
                "zsh-syntax-highlighting", "https://github.com/zsh-users/zsh-syntax-highlighting.git",
                f"{OMZ_CUSTOM}/plugins/zsh-syntax-highlighting",
            ),
            PackageUnit("direnv", "direnv", command="direnv"),
        ], after=change_default_shell),
        PhaseDefinition(3, "CLI Tools", [
            PackageUnit("ripgrep", "ripgrep", command="rg"),
            PackageUnit("fd", {"apt": "fd-find", "dnf": "fd-find", "pacman": "fd", "brew": "fd"}, command="fd", alias="fdfind"),
            PackageUnit("bat", "bat", command="bat", alias="batcat"),
            PackageUnit("fzf", "fzf", command="fzf"),
            PackageUnit("zoxide", "zoxide", command="zoxide"),
            PackageUnit("jq", "jq", command="jq"),
            PackageUnit("tree", "tree", command="tree"),
            PackageUnit("wget", "wget", command="wget"),
            PackageUnit("shellcheck", {"apt": "shellcheck", "dnf": "ShellCheck", "pacman": "shellcheck", "brew": "shellcheck"}, command="shellcheck"),
        ]),
        PhaseDefinition(4, "Developer Tools", [
            BinaryUnit(HELIX, packages={"brew": "helix"}),
            BinaryUnit(LAZYGIT, packages={"brew": "lazygit"}),
            PackageUnit("delta", "git-delta", command="delta"),
            BinaryUnit(GH, packages={"brew": "gh"}),
            PackageUnit("tmux", "tmux", command="tmux"),
        ]),
        PhaseDefinition(5, "File Management", [
            BinaryUnit(LF, packages={"brew": "lf"}),
            PackageUnit("ncdu", "ncdu", command="ncdu"),
            PackageUnit("rsync", "rsync", command="rsync"),
            PackageUnit("trash-cli", "trash-cli", command="trash-put"),
            PackageUnit("7zip", {"apt": "p7zip-full", "dnf": "p7zip", "pacman": "p7zip", "brew": "p7zip"}, command="7z"),
        ]),
        PhaseDefinition(6, "System Utilities", [
            PackageUnit("htop", "htop", command="htop"),
            PackageUnit("btop", "btop", command="btop"),
            PackageUnit("lsof", "lsof", command="lsof"),
            PackageUnit("strace", {"apt": "strace", "dnf": "strace", "pacman": "strace"}, command="strace"),
            PackageUnit("dig", {"apt": "dnsutils", "dnf": "bind-utils", "pacman": "bind", "brew": "bind"}, command="dig"),
        ]),
        PhaseDefinition(7, "Infrastructure", [
            PackageUnit("docker", {"apt": "docker.io", "dnf": "moby-engine", "pacman": "docker"}, command="docker"),
        ]),
        PhaseDefinition(8, "Configuration", [
            ConfigUnit(),
        ]),
    ]


def phase_names() -> list[str]:
    return [p.name for p in build_phases()]
