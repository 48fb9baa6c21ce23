"""skillmarket Packager — bundle every marketplace skill into a single zip.

Archive layout:
    claude-plugins-skills-20260101-120000.zip
        commit-messages/            # or core-commit-messages with prefix=True
            SKILL.md
            references/guide.md
        react/
            SKILL.md

Only files are stored; directories are implied by member names, which always
use forward slashes.
"""

from __future__ import annotations

import hashlib
import logging
import zipfile
from datetime import datetime
from pathlib import Path
from typing import Optional

from pydantic import BaseModel

from .catalog import Catalog, check_skill
from .models import MarketplacePlugin
from .sync import SkillResult

logger = logging.getLogger("skillmarket.packager")

ARCHIVE_PREFIX = "claude-plugins-skills"


def default_archive_name(now: Optional[datetime] = None) -> str:
    """Timestamped archive file name, e.g. claude-plugins-skills-20260101-120000.zip."""
    stamp = (now or datetime.now()).strftime("%Y%m%d-%H%M%S")
    return f"{ARCHIVE_PREFIX}-{stamp}.zip"


def archive_sha256(path: Path) -> str:
    """SHA-256 hex digest of a file."""
    digest = hashlib.sha256()
    with path.open("rb") as fh:
        for chunk in iter(lambda: fh.read(65536), b""):
            digest.update(chunk)
    return digest.hexdigest()


class PackageStats(BaseModel):
    """Counters for a packaging run."""

    skills_packaged: int = 0
    skills_failed: int = 0
    files_added: int = 0


class SkillPackager:
    """Writes all marketplace skills into one distributable zip archive.

    Args:
        catalog: The marketplace catalog to read skills from.
        prefix: Prefix packaged skill names with their plugin name.
    """

    def __init__(self, catalog: Catalog, prefix: bool = False) -> None:
        self.catalog = catalog
        self.prefix = prefix
        self.stats = PackageStats()
        self.results: list[SkillResult] = []

    def package(self, zip_path: Path) -> PackageStats:
        """Create the zip archive.

        Args:
            zip_path: Where to write the archive. Parent directories are created.

        Returns:
            PackageStats: Totals for the run.
        """
        zip_path.parent.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(zip_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for plugin in self.catalog.plugins:
                self._each_skill(plugin, lambda p, s: self.package_skill(zf, p, s))

        logger.info(
            "Packaged %d skills (%d failed, %d files) -> %s",
            self.stats.skills_packaged,
            self.stats.skills_failed,
            self.stats.files_added,
            zip_path,
        )
        return self.stats

    def validate(self) -> PackageStats:
        """Dry run: check every skill as package() would, without writing anything.

        Returns:
            PackageStats: Totals; files_added stays 0.
        """
        for plugin in self.catalog.plugins:
            self._each_skill(plugin, self._check, dry_run=True)
        return self.stats

    def package_skill(self, zf: zipfile.ZipFile, plugin: MarketplacePlugin, skill_path: str) -> int:
        """Add every file of one skill to an open archive.

        Args:
            zf: Archive opened for writing.
            plugin: The plugin that lists the skill.
            skill_path: Skill path as written in marketplace.json.

        Returns:
            int: Number of files added.

        Raises:
            FileNotFoundError: If the source directory or its SKILL.md is missing.
        """
        src_dir = self.catalog.resolve_skill(skill_path)
        check_skill(src_dir)
        packaged = plugin.packaged_name(skill_path, self.prefix)
        logger.debug("  Adding %s to zip...", packaged)

        count = 0
        for path in sorted(src_dir.rglob("*")):
            if not path.is_file():
                continue
            arcname = f"{packaged}/{path.relative_to(src_dir).as_posix()}"
            zf.write(path, arcname)
            count += 1
            logger.debug("    Added: %s", arcname)

        self.stats.files_added += count
        return count

    def _check(self, plugin: MarketplacePlugin, skill_path: str) -> int:
        check_skill(self.catalog.resolve_skill(skill_path))
        return 0

    def _each_skill(self, plugin: MarketplacePlugin, action, dry_run: bool = False) -> None:
        """Run action(plugin, skill_path) per skill, recording successes and failures."""
        if not plugin.skills:
            logger.debug("Plugin '%s' has no skills", plugin.name)
            return

        for skill_path in plugin.skills:
            result = SkillResult(
                plugin=plugin.name,
                skill_path=skill_path,
                name=plugin.packaged_name(skill_path, self.prefix),
                dry_run=dry_run,
            )
            try:
                result.files = action(plugin, skill_path)
                self.stats.skills_packaged += 1
            except (OSError, ValueError) as exc:
                logger.error("Failed to package %s: %s", skill_path, exc)
                result.error = str(exc)
                self.stats.skills_failed += 1
            self.results.append(result)
