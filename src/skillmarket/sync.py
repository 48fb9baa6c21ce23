"""skillmarket Sync — install marketplace skills into a Codex skills directory.

Target layout:
    ~/.codex/skills/                # or $CODEX_HOME/skills, or ./.codex/skills
        commit-messages/            # or core-commit-messages with prefix=True
            SKILL.md
            references/
        react/
            SKILL.md

Each sync replaces the destination directory wholesale so files removed
upstream disappear from Codex too.
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from .catalog import Catalog, check_skill
from .models import MarketplacePlugin

logger = logging.getLogger("skillmarket.sync")


def default_target_dir(project: bool = False) -> Path:
    """Resolve the Codex skills directory, respecting the CODEX_HOME env var.

    Args:
        project: Use .codex/skills in the current directory instead.

    Returns:
        Path: The absolute target directory.
    """
    if project:
        return Path(".codex/skills").resolve()
    env = os.environ.get("CODEX_HOME")
    if env:
        return (Path(env).expanduser() / "skills").resolve()
    return Path("~/.codex/skills").expanduser().resolve()


class SyncStats(BaseModel):
    """Counters for a sync run."""

    skills_synced: int = 0
    skills_failed: int = 0
    files_created: int = 0


class SkillResult(BaseModel):
    """Outcome of syncing or packaging a single skill."""

    plugin: str
    skill_path: str
    name: str = Field(description="Packaged skill name (optionally plugin-prefixed)")
    files: int = 0
    dry_run: bool = False
    error: str = ""

    @property
    def ok(self) -> bool:
        return not self.error


class SkillSyncer:
    """Copies every skill listed in a marketplace into a Codex skills directory.

    Args:
        catalog: The marketplace catalog to read skills from.
        target_dir: Codex skills directory (default: see default_target_dir()).
        dry_run: Validate and report without touching the filesystem.
        prefix: Prefix synced skill names with their plugin name.
    """

    def __init__(
        self,
        catalog: Catalog,
        target_dir: Optional[Path] = None,
        dry_run: bool = False,
        prefix: bool = False,
    ) -> None:
        self.catalog = catalog
        self.target_dir = (target_dir or default_target_dir()).expanduser().resolve()
        self.dry_run = dry_run
        self.prefix = prefix
        self.stats = SyncStats()
        self.results: list[SkillResult] = []

    def sync_all(self) -> SyncStats:
        """Sync every plugin in the marketplace.

        Returns:
            SyncStats: Totals for the run.
        """
        for plugin in self.catalog.plugins:
            self.sync_plugin(plugin)
        logger.info(
            "Synced %d skills (%d failed, %d files) into %s",
            self.stats.skills_synced,
            self.stats.skills_failed,
            self.stats.files_created,
            self.target_dir,
        )
        return self.stats

    def sync_plugin(self, plugin: MarketplacePlugin) -> list[SkillResult]:
        """Sync each skill of one plugin; a failing skill doesn't stop the rest.

        Args:
            plugin: The marketplace plugin entry.

        Returns:
            list[SkillResult]: One result per skill path.
        """
        if not plugin.skills:
            logger.debug("Plugin '%s' has no skills", plugin.name)
            return []

        results: list[SkillResult] = []
        for skill_path in plugin.skills:
            result = SkillResult(
                plugin=plugin.name,
                skill_path=skill_path,
                name=plugin.packaged_name(skill_path, self.prefix),
                dry_run=self.dry_run,
            )
            try:
                result.files = self.sync_skill(plugin, skill_path)
                self.stats.skills_synced += 1
            except (OSError, ValueError) as exc:
                logger.error("Failed to sync %s: %s", skill_path, exc)
                result.error = str(exc)
                self.stats.skills_failed += 1
            results.append(result)

        self.results.extend(results)
        return results

    def sync_skill(self, plugin: MarketplacePlugin, skill_path: str) -> int:
        """Copy one skill directory into the target directory.

        Args:
            plugin: The plugin that lists the skill.
            skill_path: Skill path as written in marketplace.json.

        Returns:
            int: Number of files copied (0 on dry run).

        Raises:
            FileNotFoundError: If the source directory or its SKILL.md is missing.
        """
        src_dir = self.catalog.resolve_skill(skill_path)
        check_skill(src_dir)

        dst_dir = self.target_dir / plugin.packaged_name(skill_path, self.prefix)
        logger.debug("  %s -> %s", src_dir, dst_dir)

        if self.dry_run:
            return 0

        if dst_dir.is_symlink() or dst_dir.is_file():
            dst_dir.unlink()
        elif dst_dir.exists():
            shutil.rmtree(dst_dir)

        dst_dir.mkdir(parents=True)

        count = 0
        for path in sorted(src_dir.rglob("*")):
            rel = path.relative_to(src_dir)
            dest = dst_dir / rel
            if path.is_dir():
                dest.mkdir(parents=True, exist_ok=True)
                continue
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(path, dest)
            count += 1
            logger.debug("    Copied: %s", rel)

        self.stats.files_created += count
        return count
