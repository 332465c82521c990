"""Notes module: notes filed into folders, per scenario."""

from __future__ import annotations

import html
from datetime import datetime, timezone

from modular_workspace.core.capability import WorkspaceAPI

from .base import ScenarioModule
from .schemas import Note, NotesData, NotesDocument

MODULE_ID = "notes"


class NotesModule(ScenarioModule[NotesData]):
    module_id = MODULE_ID
    document_type = NotesDocument

    @property
    def data(self) -> NotesData:
        return self.scenario.data

    def _find(self, note_id: int) -> Note | None:
        return next((n for n in self.data.notes if n.id == note_id), None)

    async def add_note(
        self, title: str, content: str = "", folder_id: int | None = None
    ) -> Note | None:
        title = title.strip()
        if not title:
            self.api.show_message("Note title cannot be empty")
            return None
        data = self.data
        note = Note(id=data.note_id_counter, title=title, content=content, folder_id=folder_id)
        data.notes.append(note)
        data.note_id_counter += 1
        await self.save()
        return note

    async def update_note(
        self, note_id: int, title: str | None = None, content: str | None = None
    ) -> bool:
        note = self._find(note_id)
        if note is None:
            return False
        if title is not None and title.strip():
            note.title = title.strip()
        if content is not None:
            note.content = content
        note.updated_at = datetime.now(timezone.utc).isoformat()
        await self.save()
        return True

    async def delete_note(self, note_id: int) -> bool:
        if self._find(note_id) is None:
            return False
        self.data.notes = [n for n in self.data.notes if n.id != note_id]
        await self.save()
        return True

    def render_actions(self) -> str:
        return (
            '<div class="module-actions">'
            '<button class="btn btn-primary" data-action="add-note">New note</button>'
            "</div>"
        )

    def render_content(self) -> str:
        if not self.data.notes:
            return '<div class="empty-state">No notes yet</div>'
        folders = {f.id: f.name for f in self.data.folders}
        cards = []
        for note in self.data.notes:
            folder = folders.get(note.folder_id, "") if note.folder_id is not None else ""
            cards.append(
                f'<article class="note-card" data-note="{note.id}">'
                f"<h3>{html.escape(note.title)}</h3>"
                f'<span class="note-folder">{html.escape(folder)}</span>'
                f"<p>{html.escape(note.content)}</p>"
                "</article>"
            )
        return f'<div class="notes-grid">{"".join(cards)}</div>'


async def load_notes_module(api: WorkspaceAPI) -> NotesModule:
    module = NotesModule(api)
    await module.start()
    return module
