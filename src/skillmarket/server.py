"""skillmarket Server — expose the marketplace documents over MCP.

Lets a host that speaks MCP load skills, agents and commands straight from a
marketplace checkout instead of an installed copy.

Resources:
    skill://<plugin>/<name>         SKILL.md body
    agent://<plugin>/<name>         agents/<name>.md body
    command://<plugin>/<name>       commands/<name>.md body

Tools:
    marketplace.list      List documents (optionally by kind)
    marketplace.info      Metadata for one document
    marketplace.search    Search by name, description or plugin
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Optional

from mcp.server import Server
from mcp.server.lowlevel.helper_types import ReadResourceContents
from mcp.server.stdio import stdio_server
from mcp.types import Resource, TextContent, Tool
from pydantic import AnyUrl, ValidationError

from .catalog import Catalog
from .models import DocumentKind, SkillDocument

logger = logging.getLogger("skillmarket.server")

_KIND_SCHEMA = {
    "type": "string",
    "enum": [k.value for k in DocumentKind],
    "description": "Limit to one document kind",
}


def _summary(doc: SkillDocument) -> dict[str, Any]:
    return {
        "kind": doc.kind.value,
        "name": doc.name,
        "plugin": doc.plugin,
        "description": doc.description,
        "uri": doc.uri,
    }


def _text(data: Any) -> list[TextContent]:
    return [TextContent(type="text", text=json.dumps(data, indent=2, default=str))]


def _normalize_uri(uri: str) -> str:
    """Canonical form of a resource URI, as clients echo it back."""
    try:
        return str(AnyUrl(uri))
    except ValidationError:
        return uri


class MarketplaceServer:
    """Serves a marketplace catalog through the MCP protocol on stdio.

    Args:
        catalog: The marketplace catalog to serve.
    """

    def __init__(self, catalog: Catalog) -> None:
        self.catalog = catalog
        self._mcp_server = Server("skillmarket")
        self._setup_handlers()

    def _setup_handlers(self) -> None:
        """Register MCP protocol handlers."""

        @self._mcp_server.list_tools()
        async def list_tools() -> list[Tool]:
            return self.tools()

        @self._mcp_server.list_resources()
        async def list_resources() -> list[Resource]:
            return self.resources()

        @self._mcp_server.call_tool()
        async def call_tool(name: str, arguments: dict) -> list[TextContent]:
            return await self._handle_tool_call(name, arguments or {})

        @self._mcp_server.read_resource()
        async def read_resource(uri) -> list[ReadResourceContents]:
            return await self._read_resource_contents(str(uri))

    def tools(self) -> list[Tool]:
        return [
            Tool(
                name="marketplace.list",
                description="List the skills, agents and commands in the marketplace",
                inputSchema={
                    "type": "object",
                    "properties": {"kind": _KIND_SCHEMA},
                    "required": [],
                },
            ),
            Tool(
                name="marketplace.info",
                description="Get metadata and content for one skill, agent or command",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "name": {"type": "string", "description": "Document name"},
                        "kind": _KIND_SCHEMA,
                    },
                    "required": ["name"],
                },
            ),
            Tool(
                name="marketplace.search",
                description="Search documents by name, description or plugin",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "query": {"type": "string", "description": "Case-insensitive search text"},
                        "kind": _KIND_SCHEMA,
                    },
                    "required": ["query"],
                },
            ),
        ]

    def resources(self) -> list[Resource]:
        return [
            Resource(
                uri=doc.uri,
                name=doc.name,
                description=doc.description or f"{doc.kind.value} from {doc.plugin}",
                mimeType="text/markdown",
            )
            for doc in self.catalog.documents()
        ]

    async def _handle_tool_call(self, name: str, arguments: dict) -> list[TextContent]:
        """Route a tool call to the appropriate handler.

        Args:
            name: Tool name.
            arguments: Tool arguments.

        Returns:
            list[TextContent]: MCP response.
        """
        try:
            kind = DocumentKind(arguments["kind"]) if arguments.get("kind") else None
        except ValueError:
            return _text({"error": f"Unknown kind: {arguments['kind']}"})

        if name == "marketplace.list":
            return _text([_summary(d) for d in self.catalog.documents(kind)])

        if name == "marketplace.search":
            query = arguments.get("query", "")
            if not query:
                return _text({"error": "query is required"})
            return _text([_summary(d) for d in self.catalog.search(query, kind)])

        if name == "marketplace.info":
            doc_name = arguments.get("name", "")
            if not doc_name:
                return _text({"error": "name is required"})
            doc = self.catalog.get(doc_name, kind)
            if doc is None:
                return _text({"error": f"Document not found: {doc_name}"})
            return _text({**_summary(doc), "path": doc.path, "metadata": doc.metadata, "body": doc.body})

        return _text({"error": f"Unknown tool: {name}"})

    async def _handle_read_resource(self, uri: str) -> str:
        """Return the markdown body behind a resource URI.

        Raises:
            ValueError: If no document has that URI.
        """
        wanted = _normalize_uri(uri)
        for doc in self.catalog.documents():
            if _normalize_uri(doc.uri) == wanted:
                return doc.body
        raise ValueError(f"Resource not found: {uri}")

    async def _read_resource_contents(self, uri: str) -> list[ReadResourceContents]:
        body = await self._handle_read_resource(uri)
        return [ReadResourceContents(content=body, mime_type="text/markdown")]

    async def run_stdio(self) -> None:
        """Run the server as an MCP server on stdio."""
        async with stdio_server() as (read_stream, write_stream):
            await self._mcp_server.run(
                read_stream,
                write_stream,
                self._mcp_server.create_initialization_options(),
            )


def main(marketplace_file: Optional[Path] = None) -> None:
    """Entry point for the skillmarket MCP server.

    Args:
        marketplace_file: Path to marketplace.json.
    """
    logging.basicConfig(level=logging.WARNING, format="%(name)s: %(message)s")
    server = MarketplaceServer(Catalog(marketplace_file))
    logger.warning("skillmarket server started: %d documents", len(server.catalog.documents()))
    asyncio.run(server.run_stdio())
