"""skillmarket data models — marketplace.json schema and markdown documents.

A marketplace lists plugins; each plugin bundles three document kinds:
  - Skill: a directory with a SKILL.md entry point (plus any reference files)
  - Agent: a persona definition under the plugin's agents/ directory
  - Command: a slash-command template under the plugin's commands/ directory
"""

from __future__ import annotations

import enum
import json
from pathlib import Path, PurePosixPath
from typing import Any
from urllib.parse import quote

import yaml
from pydantic import BaseModel, Field, ValidationError


class DocumentKind(str, enum.Enum):
    """The three markdown document types a plugin can ship."""

    SKILL = "skill"
    AGENT = "agent"
    COMMAND = "command"


class MarketplaceOwner(BaseModel):
    """Who publishes the marketplace."""

    name: str
    email: str = ""
    url: str = ""


class MarketplacePlugin(BaseModel):
    """A plugin entry from marketplace.json.

    Skill paths are relative to the marketplace root,
    e.g. "./plugins/core/skills/commit-messages".
    """

    name: str = Field(description="Plugin identifier (kebab-case)")
    source: str = Field(default="", description="Plugin directory relative to the marketplace root")
    description: str = Field(default="", description="Human-readable description")
    version: str = Field(default="", description="Plugin version string")
    skills: list[str] = Field(default_factory=list, description="Paths to skill directories")

    @staticmethod
    def skill_name(path: str) -> str:
        """Extract the skill name from its path (the last path component)."""
        return PurePosixPath(path.replace("\\", "/").rstrip("/")).name

    def packaged_name(self, path: str, prefix: bool = False) -> str:
        """Name of a skill once synced or packaged, optionally plugin-prefixed."""
        name = self.skill_name(path)
        if prefix:
            return f"{self.name}-{name}"
        return name


class MarketplaceConfig(BaseModel):
    """The complete marketplace definition — parsed from marketplace.json."""

    name: str
    owner: MarketplaceOwner = Field(default_factory=lambda: MarketplaceOwner(name="unknown"))
    plugins: list[MarketplacePlugin] = Field(default_factory=list)

    def get_plugin(self, name: str) -> MarketplacePlugin | None:
        for plugin in self.plugins:
            if plugin.name == name:
                return plugin
        return None

    @property
    def skill_count(self) -> int:
        return sum(len(p.skills) for p in self.plugins)


class SkillDocument(BaseModel):
    """A parsed markdown document (skill, agent or command)."""

    kind: DocumentKind
    name: str
    description: str = ""
    plugin: str = Field(description="Name of the plugin that ships this document")
    path: str = Field(description="Absolute path to the markdown file")
    body: str = Field(default="", description="Markdown content after the frontmatter")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Remaining frontmatter keys")

    @property
    def uri(self) -> str:
        """Resource URI under which the document is served."""
        return f"{self.kind.value}://{quote(self.plugin, safe='')}/{quote(self.name, safe='')}"


class ValidationIssue(BaseModel):
    """A problem found while validating the marketplace."""

    plugin: str
    skill: str
    message: str


def parse_frontmatter(text: str) -> tuple[dict[str, Any], str]:
    """Split a markdown document into its YAML frontmatter and body.

    A document that doesn't start with a '---' line has no frontmatter.

    Args:
        text: Full document text.

    Returns:
        tuple: (frontmatter mapping, markdown body).

    Raises:
        ValueError: If the frontmatter is unterminated or not a mapping.
    """
    lines = text.splitlines()
    if not lines or lines[0].strip() != "---":
        return {}, text

    idx = 1
    while idx < len(lines) and lines[idx].strip() != "---":
        idx += 1
    if idx >= len(lines):
        raise ValueError("YAML frontmatter must end with a '---' line")

    try:
        meta = yaml.safe_load("\n".join(lines[1:idx])) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML frontmatter: {exc}") from exc
    if not isinstance(meta, dict):
        raise ValueError(f"Frontmatter must be a YAML mapping, got {type(meta).__name__}")

    return meta, "\n".join(lines[idx + 1:]).lstrip("\n")


def parse_marketplace(path: Path) -> MarketplaceConfig:
    """Parse a marketplace.json file into a MarketplaceConfig.

    Args:
        path: Path to the marketplace.json file.

    Returns:
        MarketplaceConfig: The parsed marketplace.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If the JSON is invalid or missing required fields.
    """
    if not path.exists():
        raise FileNotFoundError(f"marketplace.json not found: {path}")

    try:
        raw = json.loads(path.read_text())
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ValueError(f"marketplace.json must be a JSON object, got {type(raw).__name__}")

    try:
        return MarketplaceConfig.model_validate(raw)
    except ValidationError as exc:
        raise ValueError(f"Invalid marketplace {path}: {exc}") from exc


def generate_marketplace_json(config: MarketplaceConfig) -> str:
    """Serialize a MarketplaceConfig back to JSON.

    Args:
        config: The marketplace to serialize.

    Returns:
        str: JSON string representation.
    """
    return json.dumps(config.model_dump(exclude_unset=True), indent=2) + "\n"
