"""
Serveur MCP de notes (stockage en mémoire).

Outils: create-note, list-notes, delete-note.
"""
import logging
import uuid
from typing import Dict, Optional

from pydantic import BaseModel, Field

from ....core.jsonrpc import tool_error, tool_result
from ....core.models import Note
from ..base import BaseServerInstance

logger = logging.getLogger(__name__)


class CreateNoteArgs(BaseModel):
    title: str = Field(..., min_length=1, description="Title of the note")
    content: str = Field(..., min_length=1, description="Content of the note")


class DeleteNoteArgs(BaseModel):
    id: str = Field(..., min_length=1, description="ID of the note to delete")


class NotesServer(BaseServerInstance):
    """Notes id -> Note conservées tant que le processus vit (y compris à l'arrêt)."""

    server_id = "notes"
    display_name = "notes-server"

    def __init__(self, server_id: Optional[str] = None):
        self.notes: Dict[str, Note] = {}
        super().__init__(server_id)

    def _register_tools(self) -> None:

        @self._tool("create-note", "Create a new note", CreateNoteArgs)
        async def create_note(args: CreateNoteArgs):
            note_id = uuid.uuid4().hex[:12]
            self.notes[note_id] = Note(id=note_id, title=args.title, content=args.content)
            logger.info(f"Note créée: {note_id}")
            return tool_result(f"Note created successfully with ID: {note_id}")

        @self._tool("list-notes", "List all notes")
        async def list_notes(args):
            notes_list = "\n".join(
                f"ID: {note.id}\nTitle: {note.title}\nCreated: {note.created_at:%Y-%m-%d %H:%M:%S}\n---"
                for note in self.notes.values()
            )
            return tool_result(notes_list or "No notes found")

        @self._tool("delete-note", "Delete a note by ID", DeleteNoteArgs)
        async def delete_note(args: DeleteNoteArgs):
            if args.id not in self.notes:
                return tool_error(f"Note with ID {args.id} not found")
            del self.notes[args.id]
            logger.info(f"Note supprimée: {args.id}")
            return tool_result(f"Note {args.id} deleted successfully")
