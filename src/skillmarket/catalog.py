"""skillmarket Catalog — resolve marketplace.json into skill, agent and command documents.

Directory layout of a marketplace:
    <root>/
        .claude-plugin/
            marketplace.json        # Index of plugins and their skill paths
        plugins/
            core/
                skills/
                    commit-messages/
                        SKILL.md
                        references/
                agents/
                    code-reviewer.md
                commands/
                    pr-description.md
            react/
                ...

Skill paths in marketplace.json are resolved against <root>.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Optional

from . import MARKETPLACE_FILE
from .models import (
    DocumentKind,
    MarketplaceConfig,
    MarketplacePlugin,
    SkillDocument,
    ValidationIssue,
    parse_frontmatter,
    parse_marketplace,
)

logger = logging.getLogger("skillmarket.catalog")

SKILL_FILE = "SKILL.md"
KEBAB_CASE = re.compile(r"^[a-z0-9]+(-[a-z0-9]+)*$")

_KIND_DIRS = {
    DocumentKind.AGENT: "agents",
    DocumentKind.COMMAND: "commands",
}


def _default_marketplace_file() -> Path:
    """Resolve the default marketplace.json, respecting SKILLMARKET_MARKETPLACE env var.

    Returns:
        Path: The marketplace.json path.
    """
    env = os.environ.get("SKILLMARKET_MARKETPLACE")
    if env:
        return Path(env)
    return Path(MARKETPLACE_FILE)


def marketplace_root(marketplace_file: Path) -> Path:
    """Directory that skill paths in marketplace.json are relative to."""
    parent = marketplace_file.resolve().parent
    if parent.name == ".claude-plugin":
        return parent.parent
    return parent


def check_skill(skill_dir: Path) -> Path:
    """Verify a skill directory exists and has a SKILL.md entry point.

    Args:
        skill_dir: Absolute path to the skill directory.

    Returns:
        Path: The SKILL.md path.

    Raises:
        FileNotFoundError: If the directory or its SKILL.md is missing.
    """
    if not skill_dir.is_dir():
        raise FileNotFoundError(f"source directory does not exist: {skill_dir}")
    skill_file = skill_dir / SKILL_FILE
    if not skill_file.is_file():
        raise FileNotFoundError(f"{SKILL_FILE} not found in {skill_dir}")
    return skill_file


def load_document(path: Path, kind: DocumentKind, plugin: str) -> SkillDocument:
    """Parse a markdown file into a SkillDocument.

    Skills are named after their directory unless the frontmatter says
    otherwise; agents and commands after their file stem.

    Raises:
        ValueError: If the frontmatter is malformed.
    """
    meta, body = parse_frontmatter(path.read_text(encoding="utf-8"))
    fallback = path.parent.name if kind == DocumentKind.SKILL else path.stem
    name = meta.pop("name", None) or fallback
    description = meta.pop("description", None) or ""
    return SkillDocument(
        kind=kind,
        name=str(name),
        description=str(description).strip(),
        plugin=plugin,
        path=str(path),
        body=body,
        metadata=meta,
    )


class Catalog:
    """Read-only view over a marketplace and the documents its plugins ship.

    Args:
        marketplace_file: Path to marketplace.json (default: SKILLMARKET_MARKETPLACE
            or ./.claude-plugin/marketplace.json).
        root: Directory skill paths are relative to (default: derived from the
            marketplace file location).

    Raises:
        FileNotFoundError: If marketplace.json doesn't exist.
        ValueError: If marketplace.json is invalid.
    """

    def __init__(self, marketplace_file: Optional[Path] = None, root: Optional[Path] = None) -> None:
        self.marketplace_file = (marketplace_file or _default_marketplace_file()).expanduser()
        self.config: MarketplaceConfig = parse_marketplace(self.marketplace_file)
        self.root = (root or marketplace_root(self.marketplace_file)).expanduser().resolve()

    @property
    def plugins(self) -> list[MarketplacePlugin]:
        return self.config.plugins

    def resolve_skill(self, skill_path: str) -> Path:
        """Absolute path of a skill directory listed in marketplace.json."""
        path = Path(skill_path).expanduser()
        if not path.is_absolute():
            path = self.root / path
        return Path(os.path.normpath(path))

    def plugin_dir(self, plugin: MarketplacePlugin) -> Path:
        """Resolve a plugin's directory, falling back to plugins/<name>."""
        if plugin.source:
            return Path(os.path.normpath(self.root / plugin.source))
        return self.root / "plugins" / plugin.name

    def skills(self) -> list[SkillDocument]:
        """Parse every skill listed in the marketplace.

        Skills that are missing or malformed are logged and skipped.
        """
        results: list[SkillDocument] = []
        for plugin in self.plugins:
            for skill_path in plugin.skills:
                skill_dir = self.resolve_skill(skill_path)
                try:
                    skill_file = check_skill(skill_dir)
                    results.append(load_document(skill_file, DocumentKind.SKILL, plugin.name))
                except (FileNotFoundError, ValueError) as exc:
                    logger.warning("Skipping skill %s/%s: %s", plugin.name, skill_path, exc)
        return results

    def agents(self) -> list[SkillDocument]:
        return self._scan_kind(DocumentKind.AGENT)

    def commands(self) -> list[SkillDocument]:
        return self._scan_kind(DocumentKind.COMMAND)

    def documents(self, kind: Optional[DocumentKind] = None) -> list[SkillDocument]:
        """List documents, optionally filtered by kind.

        Args:
            kind: If provided, only list documents of this kind.

        Returns:
            list[SkillDocument]: Skills first, then agents, then commands.
        """
        if kind == DocumentKind.SKILL:
            return self.skills()
        if kind is not None:
            return self._scan_kind(kind)
        return self.skills() + self.agents() + self.commands()

    def get(self, name: str, kind: Optional[DocumentKind] = None) -> Optional[SkillDocument]:
        """Look up a document by name (or plugin-prefixed name).

        Args:
            name: Document name, e.g. "commit-messages" or "core-commit-messages".
            kind: Limit the lookup to one document kind.

        Returns:
            SkillDocument or None if not found.
        """
        for doc in self.documents(kind):
            if doc.name == name or f"{doc.plugin}-{doc.name}" == name:
                return doc
        return None

    def search(self, query: str, kind: Optional[DocumentKind] = None) -> list[SkillDocument]:
        """Search documents by name, description, or plugin.

        Args:
            query: Case-insensitive search string.
            kind: Limit search to one document kind.

        Returns:
            list[SkillDocument]: Matching documents.
        """
        q = query.lower()
        return [
            doc for doc in self.documents(kind)
            if q in doc.name.lower()
            or q in doc.description.lower()
            or q in doc.plugin.lower()
        ]

    def validate(self, prefix: bool = False) -> list[ValidationIssue]:
        """Check every listed skill for problems that would break sync or packaging.

        Args:
            prefix: Check packaged-name collisions as if names were plugin-prefixed.

        Returns:
            list[ValidationIssue]: Empty when the marketplace is clean.
        """
        issues: list[ValidationIssue] = []
        seen: dict[str, str] = {}

        for plugin in self.plugins:
            if not KEBAB_CASE.match(plugin.name):
                issues.append(ValidationIssue(
                    plugin=plugin.name,
                    skill="",
                    message=f"plugin name must be kebab-case: got '{plugin.name}'",
                ))

            for skill_path in plugin.skills:
                skill_name = plugin.skill_name(skill_path)

                def issue(message: str) -> None:
                    issues.append(ValidationIssue(plugin=plugin.name, skill=skill_name, message=message))

                packaged = plugin.packaged_name(skill_path, prefix)
                if packaged in seen:
                    issue(f"duplicate skill name '{packaged}' (also in plugin '{seen[packaged]}')")
                else:
                    seen[packaged] = plugin.name

                try:
                    skill_file = check_skill(self.resolve_skill(skill_path))
                    meta, _ = parse_frontmatter(skill_file.read_text(encoding="utf-8"))
                except (FileNotFoundError, ValueError) as exc:
                    issue(str(exc))
                    continue

                if not isinstance(meta.get("name"), str) or not meta["name"]:
                    issue("frontmatter 'name' is required")
                elif meta["name"] != skill_name:
                    issue(f"frontmatter name '{meta['name']}' does not match directory '{skill_name}'")
                if not isinstance(meta.get("description"), str) or not meta["description"]:
                    issue("frontmatter 'description' is required")

        return issues

    def _scan_kind(self, kind: DocumentKind) -> list[SkillDocument]:
        """Scan every plugin's agents/ or commands/ directory for markdown files."""
        results: list[SkillDocument] = []
        for plugin in self.plugins:
            directory = self.plugin_dir(plugin) / _KIND_DIRS[kind]
            if not directory.is_dir():
                continue
            for entry in sorted(directory.glob("*.md")):
                try:
                    results.append(load_document(entry, kind, plugin.name))
                except (ValueError, OSError) as exc:
                    logger.warning("Skipping %s %s: %s", kind.value, entry, exc)
        return results
