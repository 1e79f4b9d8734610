"""
Notes - Example resource handler backed by an in-memory store.

Shows output-only and aliased fields, bearer-token authentication and
offset-based cursors.
"""
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple
import os
import threading
import uuid

from pydantic import BaseModel, Field
from starlette.requests import Request

from resource_api import (
    AuthenticationError,
    FieldType,
    HandlerError,
    IResourceHandler,
    Payload,
    RequestContext,
    Rule,
)


class Note(BaseModel):
    id: str = ""
    title: str = ""
    body: str = ""
    created_at: Optional[datetime] = Field(default=None, serialization_alias="createdAt")


class NotesHandler(IResourceHandler):
    """
    In-memory notes.

    Set NOTES_API_TOKEN to require ``Authorization: Bearer <token>``.
    """

    def __init__(self, token: Optional[str] = None) -> None:
        self._token = token if token is not None else os.getenv("NOTES_API_TOKEN", "")
        self._notes: Dict[str, Note] = {}
        self._lock = threading.Lock()

    def resource_name(self) -> str:
        return "notes"

    def empty_resource(self) -> Note:
        return Note()

    def rules(self) -> List[Rule]:
        return [
            Rule(field="id", output_only=True, type=FieldType.STRING),
            Rule(field="created_at", output_only=True, type=FieldType.DATETIME),
            Rule(field="body", field_alias="text", type=FieldType.STRING),
        ]

    def authenticate(self, request: Request) -> None:
        if not self._token:
            return
        if request.headers.get("Authorization", "") != f"Bearer {self._token}":
            raise AuthenticationError("Not authorized")

    def _get(self, resource_id: str) -> Note:
        note = self._notes.get(resource_id)
        if note is None:
            raise HandlerError(f"note {resource_id} not found")
        return note

    def create_resource(self, ctx: RequestContext, data: Payload, version: str) -> Note:
        note = Note(
            id=uuid.uuid4().hex,
            title=data.get("title", ""),
            body=data.get("body", ""),
            created_at=datetime.now(timezone.utc),
        )
        with self._lock:
            self._notes[note.id] = note
        return note

    def read_resource(self, ctx: RequestContext, resource_id: str, version: str) -> Note:
        return self._get(resource_id)

    def read_resource_list(
        self,
        ctx: RequestContext,
        limit: int,
        cursor: str,
        version: str,
    ) -> Tuple[List[Note], str]:
        with self._lock:
            notes = list(self._notes.values())
        offset = int(cursor) if cursor.isdigit() else 0
        page = notes[offset:offset + limit]
        next_offset = offset + len(page)
        return page, str(next_offset) if next_offset < len(notes) else ""

    def update_resource(self, ctx: RequestContext, resource_id: str, data: Payload, version: str) -> Note:
        with self._lock:
            note = self._get(resource_id)
            changes = {k: v for k, v in data.items() if k in ("title", "body")}
            updated = note.model_copy(update=changes)
            self._notes[resource_id] = updated
        return updated

    def delete_resource(self, ctx: RequestContext, resource_id: str, version: str) -> Note:
        with self._lock:
            note = self._get(resource_id)
            del self._notes[resource_id]
        return note
