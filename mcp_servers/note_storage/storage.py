"""Markdown file storage layer for notes, plus a JSON folder list.

Each note lives in ``<data_dir>/notes/<id>.md`` with a small front-matter
header; folders are kept as one pretty-printed JSON array in
``<data_dir>/folders.json``.
"""

import json
import logging
from pathlib import Path

from pydantic import TypeAdapter

from scratchpad.models import DEFAULT_FOLDER_ID, Folder, Note

logger = logging.getLogger("note_storage.storage")

HEADER_FENCE = "---\n"
HEADER_END = "---\n\n"

_folder_list = TypeAdapter(list[Folder])


def render_note(note: Note) -> str:
    """Serialise a note to its markdown file body."""
    title = note.title.replace("\r", " ").replace("\n", " ")
    header = (
        f"{HEADER_FENCE}"
        f"id: {note.id}\n"
        f"title: {title}\n"
        f"folder: {note.folder_id}\n"
        f"parent_id: {note.parent_id or 'null'}\n"
        f"created_at: {note.created_at}\n"
        f"updated_at: {note.updated_at}\n"
        f"{HEADER_END}"
    )
    return header + note.content


def parse_note(text: str) -> Note | None:
    """Parse a markdown note file. Returns None when the header is missing."""
    head, sep, body = text.partition(HEADER_END)
    if not sep:
        return None

    fields: dict[str, str] = {}
    for line in head.removeprefix(HEADER_FENCE).split("\n"):
        key, colon, value = line.partition(": ")
        if colon:
            fields[key] = value

    if not fields.get("id"):
        return None

    parent_id = fields.get("parent_id", "null")
    return Note(
        id=fields["id"],
        title=fields.get("title", ""),
        content=body,
        folder_id=fields.get("folder") or DEFAULT_FOLDER_ID,
        parent_id=None if parent_id == "null" else parent_id,
        created_at=_to_int(fields.get("created_at")),
        updated_at=_to_int(fields.get("updated_at")),
    )


def _to_int(value: str | None) -> int:
    try:
        return int(value or 0)
    except ValueError:
        return 0


class NoteFileStorage:
    """Manages note and folder persistence under a data directory."""

    def __init__(self, data_dir: Path) -> None:
        self._data_dir = data_dir
        self._notes_dir = data_dir / "notes"
        self._folders_file = data_dir / "folders.json"

    def _note_path(self, note_id: str) -> Path:
        if not note_id or "/" in note_id or "\\" in note_id or note_id in {".", ".."}:
            raise ValueError(f"Invalid note id: {note_id!r}")
        return self._notes_dir / f"{note_id}.md"

    # --- Notes ---

    def load_notes(self) -> list[Note]:
        """Return every parseable note, oldest first."""
        notes = []
        for path in sorted(self._notes_dir.glob("*.md")):
            try:
                with path.open(encoding="utf-8", newline="") as fh:
                    note = parse_note(fh.read())
            except (OSError, UnicodeDecodeError) as exc:
                logger.warning("Skipping unreadable note file %s: %s", path, exc)
                continue
            if note is None:
                logger.warning("Skipping malformed note file %s", path)
                continue
            notes.append(note)
        notes.sort(key=lambda n: (n.created_at, n.id))
        logger.info("Loaded %d notes from %s", len(notes), self._notes_dir)
        return notes

    def save_note(self, note: Note) -> None:
        """Create or overwrite the file for ``note.id``."""
        path = self._note_path(note.id)
        self._notes_dir.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8", newline="") as fh:
            fh.write(render_note(note))
        logger.info("Saved note %s to %s", note.id, path)

    def delete_note(self, note_id: str) -> None:
        """Remove the note file. Deleting an absent note is not an error."""
        path = self._note_path(note_id)
        path.unlink(missing_ok=True)
        logger.info("Deleted note %s", note_id)

    def search_notes(self, query: str) -> list[Note]:
        """Return notes whose title or content contains the query (case-insensitive)."""
        q = query.lower()
        return [
            n
            for n in self.load_notes()
            if q in n.title.lower() or q in n.content.lower()
        ]

    # --- Folders ---

    def load_folders(self) -> list[Folder]:
        """Return the folder list, creating the default folder on first use."""
        if not self._folders_file.exists():
            folders = [Folder.default()]
            self.save_folders(folders)
            logger.info("No folder file at %s, created default", self._folders_file)
            return folders
        raw = self._folders_file.read_text(encoding="utf-8")
        return _folder_list.validate_json(raw)

    def save_folders(self, folders: list[Folder]) -> None:
        """Replace the whole folder list on disk."""
        payload = [f.model_dump() for f in folders]
        self._data_dir.mkdir(parents=True, exist_ok=True)
        self._folders_file.write_text(
            json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8"
        )
        logger.info("Saved %d folders", len(folders))

    @property
    def count(self) -> int:
        """Number of note files on disk."""
        return sum(1 for _ in self._notes_dir.glob("*.md"))
