"""
Note Storage MCP Server

Exposes the scratchpad storage operations (load, save, delete and search
notes; load and replace folders) as tools via the Model Context Protocol.
Runs on port 8001 with SSE transport.
"""

import logging
from datetime import UTC, datetime

from mcp.server.fastmcp import FastMCP

from scratchpad.config import settings
from scratchpad.models import Folder, Note

from .storage import NoteFileStorage

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
)
logger = logging.getLogger("note_storage")

# ---------------------------------------------------------------------------
# MCP server + storage
# ---------------------------------------------------------------------------
mcp = FastMCP("note-storage", host="0.0.0.0", port=8001)
storage = NoteFileStorage(settings.data_dir)

# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------


@mcp.tool()
def load_notes() -> dict:
    """Return every stored note.

    Returns:
        Dictionary with the list of notes and their count.
    """
    notes = storage.load_notes()
    logger.info("Tool load_notes invoked — found=%d", len(notes))
    return {"count": len(notes), "notes": [n.model_dump() for n in notes]}


@mcp.tool()
def load_folders() -> dict:
    """Return the folder list, creating the default folder on first use.

    Returns:
        Dictionary with the list of folders.
    """
    folders = storage.load_folders()
    logger.info("Tool load_folders invoked — found=%d", len(folders))
    return {"folders": [f.model_dump() for f in folders]}


@mcp.tool()
def save_note(note: Note) -> dict:
    """Create or overwrite a note, keyed by its id.

    Args:
        note: The full note, including title, content and timestamps.

    Returns:
        Dictionary with the saved note id.
    """
    storage.save_note(note)
    logger.info("Tool save_note invoked — id=%s", note.id)
    return {"note_id": note.id}


@mcp.tool()
def save_folders(folders: list[Folder]) -> dict:
    """Replace the whole folder list.

    Args:
        folders: Every folder that should exist after the call.

    Returns:
        Dictionary with the number of folders written.
    """
    storage.save_folders(folders)
    logger.info("Tool save_folders invoked — count=%d", len(folders))
    return {"count": len(folders)}


@mcp.tool()
def delete_note(note_id: str) -> dict:
    """Delete a note. Deleting a note that does not exist is not an error.

    Args:
        note_id: Id of the note to delete.

    Returns:
        Dictionary with the deleted note id.
    """
    storage.delete_note(note_id)
    logger.info("Tool delete_note invoked — id=%s", note_id)
    return {"note_id": note_id}


@mcp.tool()
def search_notes(query: str) -> dict:
    """Search notes by substring match on title and content (case-insensitive).

    Args:
        query: The search string.

    Returns:
        Dictionary with matching notes and their count.
    """
    results = storage.search_notes(query)
    logger.info("Tool search_notes invoked — query='%s', found=%d", query, len(results))
    return {"count": len(results), "notes": [n.model_dump() for n in results]}


@mcp.tool()
def health_check() -> dict:
    """Check whether the Note Storage server is healthy.

    Returns:
        Dictionary with server status, note count, and timestamp.
    """
    logger.info("Tool health_check invoked")
    return {
        "status": "healthy",
        "server": "note-storage",
        "total_notes": storage.count,
        "timestamp": datetime.now(UTC).isoformat(),
    }


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    logger.info("Starting Note Storage MCP server on port 8001 ...")
    mcp.run(transport="sse")
