"""Shared fixtures: a small marketplace checkout on disk."""

from __future__ import annotations

import json
from pathlib import Path
from textwrap import dedent

import pytest


MARKETPLACE = {
    "name": "test-marketplace",
    "owner": {"name": "Tester", "email": "tester@example.com", "url": "https://example.com"},
    "plugins": [
        {
            "name": "core",
            "source": "./plugins/core",
            "description": "Core workflow skills",
            "skills": [
                "./plugins/core/skills/commit-messages",
                "./plugins/core/skills/tdd",
            ],
        },
        {
            "name": "react",
            "source": "./plugins/react",
            "description": "React conventions",
            "skills": ["./plugins/react/skills/react"],
        },
        {
            "name": "docs",
            "source": "./plugins/docs",
            "description": "No skills, commands only",
        },
    ],
}


def write_skill(skill_dir: Path, name: str, description: str, body: str = "Body.\n") -> Path:
    """Create a skill directory with a SKILL.md carrying frontmatter."""
    skill_dir.mkdir(parents=True, exist_ok=True)
    (skill_dir / "SKILL.md").write_text(
        f"---\nname: {name}\ndescription: {description}\n---\n\n# {name}\n\n{body}"
    )
    return skill_dir


@pytest.fixture
def marketplace_root(tmp_path: Path) -> Path:
    """Create a marketplace checkout with three plugins."""
    root = tmp_path / "marketplace"
    (root / ".claude-plugin").mkdir(parents=True)
    (root / ".claude-plugin" / "marketplace.json").write_text(json.dumps(MARKETPLACE, indent=2))

    core = root / "plugins" / "core"
    commit = write_skill(core / "skills" / "commit-messages", "commit-messages",
                         "Write conventional commit messages")
    (commit / "references").mkdir()
    (commit / "references" / "guide.md").write_text("# Guide\n")
    write_skill(core / "skills" / "tdd", "tdd", "Test-driven development workflow")

    (core / "agents").mkdir()
    (core / "agents" / "code-reviewer.md").write_text(dedent("""\
        ---
        name: code-reviewer
        description: Reviews diffs for bugs and style
        tools: Read, Grep
        ---

        You are a careful reviewer.
    """))
    (core / "commands").mkdir()
    (core / "commands" / "pr-description.md").write_text(dedent("""\
        ---
        description: Draft a pull request description
        argument-hint: "[base-branch]"
        ---

        Summarize the branch against $ARGUMENTS.
    """))

    write_skill(root / "plugins" / "react" / "skills" / "react", "react",
                "React component conventions")

    docs = root / "plugins" / "docs" / "commands"
    docs.mkdir(parents=True)
    (docs / "changelog.md").write_text("Write a changelog entry.\n")

    return root


@pytest.fixture
def marketplace_file(marketplace_root: Path) -> Path:
    return marketplace_root / ".claude-plugin" / "marketplace.json"
