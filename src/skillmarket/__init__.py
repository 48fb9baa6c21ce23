"""skillmarket — tooling for a plugin marketplace of agent skills.

The marketplace is a corpus of markdown documents (skills, agents and
commands) grouped into plugins and listed in .claude-plugin/marketplace.json.
This package syncs those skills into Codex, packages them into a zip,
serves them over MCP, and keeps the host awake while it runs.
"""

__version__ = "0.1.0"

MARKETPLACE_FILE = "./.claude-plugin/marketplace.json"
