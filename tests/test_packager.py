"""Tests for skillmarket Packager — zip packaging and dry-run validation."""

import hashlib
import zipfile
from datetime import datetime
from pathlib import Path

import pytest

from skillmarket.catalog import Catalog
from skillmarket.packager import SkillPackager, archive_sha256, default_archive_name


@pytest.fixture
def catalog(marketplace_file: Path) -> Catalog:
    return Catalog(marketplace_file)


class TestArchiveName:
    def test_timestamped_name(self):
        name = default_archive_name(datetime(2026, 1, 2, 3, 4, 5))
        assert name == "claude-plugins-skills-20260102-030405.zip"


class TestPackage:
    """Test zip creation."""

    def test_package_creates_zip(self, catalog: Catalog, tmp_path: Path):
        zip_path = tmp_path / "out" / "skills.zip"
        stats = SkillPackager(catalog).package(zip_path)
        assert zip_path.exists()
        assert stats.skills_packaged == 3
        assert stats.files_added == 4

        with zipfile.ZipFile(zip_path) as zf:
            names = sorted(zf.namelist())
            assert names == [
                "commit-messages/SKILL.md",
                "commit-messages/references/guide.md",
                "react/SKILL.md",
                "tdd/SKILL.md",
            ]
            assert zf.getinfo("react/SKILL.md").compress_type == zipfile.ZIP_DEFLATED
            assert zf.read("commit-messages/references/guide.md") == b"# Guide\n"

    def test_package_with_prefix(self, catalog: Catalog, tmp_path: Path):
        zip_path = tmp_path / "skills.zip"
        SkillPackager(catalog, prefix=True).package(zip_path)
        with zipfile.ZipFile(zip_path) as zf:
            assert "core-tdd/SKILL.md" in zf.namelist()
            assert "react-react/SKILL.md" in zf.namelist()

    def test_missing_skill_counted_as_failed(self, catalog: Catalog, marketplace_root: Path, tmp_path: Path):
        (marketplace_root / "plugins" / "core" / "skills" / "tdd" / "SKILL.md").unlink()
        packager = SkillPackager(catalog)
        stats = packager.package(tmp_path / "skills.zip")
        assert stats.skills_packaged == 2
        assert stats.skills_failed == 1
        failed = [r for r in packager.results if not r.ok]
        assert failed[0].name == "tdd"

    def test_sha256(self, catalog: Catalog, tmp_path: Path):
        zip_path = tmp_path / "skills.zip"
        SkillPackager(catalog).package(zip_path)
        assert archive_sha256(zip_path) == hashlib.sha256(zip_path.read_bytes()).hexdigest()


class TestValidate:
    """Test the dry-run path."""

    def test_validate_writes_nothing(self, catalog: Catalog, tmp_path: Path):
        packager = SkillPackager(catalog)
        stats = packager.validate()
        assert stats.skills_packaged == 3
        assert stats.files_added == 0
        assert list(tmp_path.glob("*.zip")) == []
        assert all(r.dry_run for r in packager.results)

    def test_validate_reports_missing(self, catalog: Catalog, marketplace_root: Path):
        (marketplace_root / "plugins" / "react" / "skills" / "react" / "SKILL.md").unlink()
        stats = SkillPackager(catalog).validate()
        assert stats.skills_failed == 1
