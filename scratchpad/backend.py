"""Storage backends consumed by the session core.

Two implementations share the ``Backend`` protocol: ``FileBackend`` drives
the markdown file storage in-process, ``MCPBackend`` calls the same
operations as tools on the note-storage MCP server over SSE.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Protocol

from mcp import ClientSession
from mcp.client.sse import sse_client
from pydantic import TypeAdapter, ValidationError

from mcp_servers.note_storage.storage import NoteFileStorage
from scratchpad.config import Settings
from scratchpad.models import Folder, Note

logger = logging.getLogger(__name__)

# Timeout for SSE connections (seconds)
SSE_CONNECT_TIMEOUT = 5
SSE_READ_TIMEOUT = 30

_note_list = TypeAdapter(list[Note])
_folder_list = TypeAdapter(list[Folder])


class BackendError(Exception):
    """A storage operation failed (transport or I/O)."""

    def __init__(self, operation: str, message: str) -> None:
        super().__init__(f"{operation} failed: {message}")
        self.operation = operation


class Backend(Protocol):
    """Operations the session core needs from persistent storage."""

    async def load_folders(self) -> list[Folder]: ...

    async def load_notes(self) -> list[Note]: ...

    async def save_note(self, note: Note) -> None: ...

    async def save_folders(self, folders: list[Folder]) -> None: ...

    async def delete_note(self, note_id: str) -> None: ...

    async def search_notes(self, query: str) -> list[Note]: ...


class FileBackend:
    """In-process backend over ``NoteFileStorage``.

    File I/O runs in a worker thread so the event loop only suspends at
    backend calls.
    """

    def __init__(self, data_dir: Path) -> None:
        self._storage = NoteFileStorage(data_dir)

    async def _run(self, operation: str, func, *args: Any) -> Any:
        try:
            return await asyncio.to_thread(func, *args)
        except (OSError, ValueError, ValidationError) as e:
            raise BackendError(operation, str(e)) from e

    async def load_folders(self) -> list[Folder]:
        return await self._run("load_folders", self._storage.load_folders)

    async def load_notes(self) -> list[Note]:
        return await self._run("load_notes", self._storage.load_notes)

    async def save_note(self, note: Note) -> None:
        # Snapshot so later in-memory edits cannot leak into this write.
        await self._run("save_note", self._storage.save_note, note.model_copy())

    async def save_folders(self, folders: list[Folder]) -> None:
        await self._run(
            "save_folders", self._storage.save_folders, [f.model_copy() for f in folders]
        )

    async def delete_note(self, note_id: str) -> None:
        await self._run("delete_note", self._storage.delete_note, note_id)

    async def search_notes(self, query: str) -> list[Note]:
        return await self._run("search_notes", self._storage.search_notes, query)


class MCPBackend:
    """Backend that calls the note-storage MCP server's tools."""

    def __init__(self, server_url: str) -> None:
        self._sse_url = f"{server_url.rstrip('/')}/sse"

    async def _call(self, tool: str, arguments: dict[str, Any]) -> dict[str, Any]:
        """Call a tool and return its decoded JSON payload."""
        try:
            async with sse_client(
                self._sse_url,
                timeout=SSE_CONNECT_TIMEOUT,
                sse_read_timeout=SSE_READ_TIMEOUT,
            ) as (read, write):
                async with ClientSession(read, write) as session:
                    await session.initialize()
                    result = await session.call_tool(tool, arguments)
        except Exception as e:
            logger.error("Error calling storage tool %s: %s", tool, e)
            raise BackendError(tool, str(e)) from e

        texts = [block.text for block in result.content if hasattr(block, "text")]
        response = "\n".join(texts) if texts else "{}"

        if result.isError:
            raise BackendError(tool, response)

        try:
            return json.loads(response)
        except json.JSONDecodeError as e:
            raise BackendError(tool, f"invalid response: {e}") from e

    async def _load(
        self, tool: str, key: str, adapter: TypeAdapter, arguments: dict[str, Any]
    ) -> list:
        data = await self._call(tool, arguments)
        try:
            return adapter.validate_python(data.get(key, []))
        except ValidationError as e:
            raise BackendError(tool, f"invalid response: {e}") from e

    async def load_folders(self) -> list[Folder]:
        return await self._load("load_folders", "folders", _folder_list, {})

    async def load_notes(self) -> list[Note]:
        return await self._load("load_notes", "notes", _note_list, {})

    async def save_note(self, note: Note) -> None:
        await self._call("save_note", {"note": note.model_dump()})

    async def save_folders(self, folders: list[Folder]) -> None:
        await self._call("save_folders", {"folders": [f.model_dump() for f in folders]})

    async def delete_note(self, note_id: str) -> None:
        await self._call("delete_note", {"note_id": note_id})

    async def search_notes(self, query: str) -> list[Note]:
        return await self._load("search_notes", "notes", _note_list, {"query": query})


def create_backend(settings: Settings) -> Backend:
    """Build the backend selected by ``settings.backend``."""
    if settings.backend == "mcp":
        logger.info("Using note-storage server at %s", settings.storage_server_url)
        return MCPBackend(settings.storage_server_url)
    if settings.backend == "file":
        logger.info("Using file storage in %s", settings.data_dir)
        return FileBackend(settings.data_dir)
    raise ValueError(f"Unknown backend: {settings.backend!r}")
