"""Synchronous bridge built on the official python MCP client SDK."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from anyio import ClosedResourceError
from anyio.from_thread import BlockingPortal, start_blocking_portal
from httpx import HTTPStatusError
from mcp import ClientSession, McpError, types
from mcp.client.streamable_http import streamablehttp_client

from tiangong_lca_flowmap.core.config import Settings, get_settings
from tiangong_lca_flowmap.core.exceptions import CatalogError
from tiangong_lca_flowmap.core.json_utils import parse_json_response
from tiangong_lca_flowmap.core.logging import get_logger

LOGGER = get_logger(__name__)


@dataclass
class _ServerConnection:
    client_cm: Any
    session_cm: Any
    session: ClientSession
    closed: bool = False

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            self.session_cm.__exit__(None, None, None)
        finally:
            self.client_cm.__exit__(None, None, None)


class MCPToolClient:
    """Blocking facade over MCP sessions; one session per configured server."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        connections: Mapping[str, Mapping[str, Any]] | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._connection_configs = dict(connections) if connections is not None else self._settings.mcp_service_configs()
        self._portal_cm = start_blocking_portal()
        self._portal: BlockingPortal = self._portal_cm.__enter__()
        self._connections: dict[str, _ServerConnection] = {}
        self._closed = False
        LOGGER.debug("mcp_tool_client.initialized", servers=list(self._connection_configs.keys()))

    def invoke_json_tool(
        self,
        server_name: str,
        tool_name: str,
        arguments: Mapping[str, Any] | None = None,
    ) -> Any:
        """Call a remote tool and return its structured (or JSON text) payload."""
        if self._closed:
            raise RuntimeError("Cannot invoke MCP tool on a closed client")
        connection = self._ensure_connection(server_name)
        try:
            payload = self._call_tool(connection, server_name, tool_name, arguments)
        except ClosedResourceError as exc:
            LOGGER.warning("mcp_tool_client.connection_reset", server=server_name, error=str(exc))
            self._reset_connection(server_name)
            connection = self._ensure_connection(server_name)
            payload = self._call_tool(connection, server_name, tool_name, arguments)

        if payload is None or isinstance(payload, (dict, list)):
            return payload
        if isinstance(payload, str):
            raw = payload.strip()
            return parse_json_response(raw) if raw else None
        raise CatalogError(f"MCP tool '{tool_name}' on '{server_name}' returned non-JSON payload")

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            for server_name in list(self._connections):
                self._reset_connection(server_name)
        finally:
            self._portal_cm.__exit__(None, None, None)
            LOGGER.debug("mcp_tool_client.closed")

    def __enter__(self) -> "MCPToolClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _ensure_connection(self, server_name: str) -> _ServerConnection:
        connection = self._connections.get(server_name)
        if connection is not None:
            return connection

        config = self._connection_configs.get(server_name)
        if not config:
            raise CatalogError(f"MCP server '{server_name}' is not configured")
        transport = config.get("transport", "streamable_http")
        if transport != "streamable_http":
            raise CatalogError(f"Unsupported MCP transport '{transport}' for '{server_name}'")
        url = config.get("url")
        if not url:
            raise CatalogError(f"MCP server '{server_name}' is missing a URL")
        timeout = config.get("timeout") or self._settings.request_timeout or 30

        client_cm = self._portal.wrap_async_context_manager(
            streamablehttp_client(url, headers=config.get("headers"), timeout=float(timeout))
        )
        try:
            read_stream, write_stream, _ = client_cm.__enter__()
        except Exception:
            client_cm.__exit__(None, None, None)
            raise

        session_cm = self._portal.wrap_async_context_manager(ClientSession(read_stream, write_stream))
        try:
            session = session_cm.__enter__()
            self._portal.call(session.initialize)
        except Exception:
            session_cm.__exit__(None, None, None)
            client_cm.__exit__(None, None, None)
            raise

        connection = _ServerConnection(client_cm=client_cm, session_cm=session_cm, session=session)
        self._connections[server_name] = connection
        LOGGER.debug("mcp_tool_client.session_opened", server=server_name)
        return connection

    def _reset_connection(self, server_name: str) -> None:
        connection = self._connections.pop(server_name, None)
        if connection is None:
            return
        try:
            connection.close()
        except Exception as exc:  # pragma: no cover - best effort cleanup
            LOGGER.warning("mcp_tool_client.connection_close_failed", server=server_name, error=str(exc))

    def _call_tool(
        self,
        connection: _ServerConnection,
        server_name: str,
        tool_name: str,
        arguments: Mapping[str, Any] | None,
    ) -> Any:
        args = dict(arguments or {})
        LOGGER.debug("mcp_tool_client.invoke", server=server_name, tool=tool_name, keys=list(args.keys()))
        try:
            result = self._portal.call(connection.session.call_tool, tool_name, args)
        except (McpError, HTTPStatusError) as exc:
            raise CatalogError(f"MCP tool '{tool_name}' call failed") from exc

        if result.isError:
            message = "\n".join(_text_blocks(result)) or "Unknown MCP tool error"
            raise CatalogError(f"MCP tool '{tool_name}' on '{server_name}' reported an error: {message}")

        if result.structuredContent is not None:
            return result.structuredContent
        texts = _text_blocks(result)
        if not texts:
            return None
        if len(texts) == 1:
            return texts[0]
        return [parse_json_response(text) for text in texts]


def _text_blocks(result: types.CallToolResult) -> list[str]:
    return [content.text for content in result.content if isinstance(content, types.TextContent) and content.text]


__all__ = ["MCPToolClient"]
