"""
Catalogue models — how a binary release is located and unpacked.

A ``DownloadSpec`` describes a GitHub release artifact with name
templates. Placeholders:

    {VERSION}   resolved upstream version (no leading ``v``)
    {ARCH}      x86_64 / aarch64
    {ARCH_ALT}  amd64 / arm64
    {ARCH_GO}   amd64 / arm64 (Go toolchain naming)

Some projects mix conventions (e.g. ``x86_64`` but ``arm64``). Those
declare ``arch_map``, which overrides ``{ARCH}`` for the detected
machine.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from rice.core.models.environment import Environment


def render_template(template: str, values: dict[str, str]) -> str:
    """Replace ``{KEY}`` placeholders; unknown placeholders are left alone."""
    out = template
    for key, value in values.items():
        out = out.replace("{" + key + "}", value)
    return out


class DownloadSpec(BaseModel):
    """A binary tool published as a GitHub release artifact."""

    model_config = ConfigDict(frozen=True)

    repo: str                       # owner/name
    tool: str                       # tool id recorded in state
    archive: str                    # artifact name template
    checksum_file: str              # manifest name template
    binary_path: str = ""           # path template inside the archive
    command: str = ""               # installed command name (default: tool)
    arch_map: dict[str, str] = Field(default_factory=dict)
    raw: bool = False               # artifact is the binary itself

    @property
    def command_name(self) -> str:
        return self.command or self.tool

    def placeholders(self, version: str, env: Environment) -> dict[str, str]:
        values = {"VERSION": version, **env.arch_placeholders()}
        if env.arch in self.arch_map:
            values["ARCH"] = self.arch_map[env.arch]
        return values

    def artifact_name(self, version: str, env: Environment) -> str:
        return render_template(self.archive, self.placeholders(version, env))

    def manifest_name(self, version: str, env: Environment) -> str:
        return render_template(self.checksum_file, self.placeholders(version, env))

    def binary_in_archive(self, version: str, env: Environment) -> str:
        template = self.binary_path or self.command_name
        return render_template(template, self.placeholders(version, env))
