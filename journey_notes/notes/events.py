"""
Change notifications emitted by the notes core.

Renderers subscribe to the events they care about; the core emits after
every state change that affects what is displayed. A failing listener is
logged and never interrupts the operation that emitted the event.
"""

import logging
from enum import Enum
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

Listener = Callable[[Dict[str, Any]], None]


class NotesEvent(str, Enum):
    """
    Events emitted outward.

    FOLDER_LIST_CHANGED: folders added, removed, selected or expanded
    NOTE_LIST_CHANGED: notes of one folder changed (payload: folder_id)
    EDITOR_STATE_CHANGED: editor buffer or its dirty state changed
        (payload: the editor snapshot)
    """
    FOLDER_LIST_CHANGED = "folder-list-changed"
    NOTE_LIST_CHANGED = "note-list-changed"
    EDITOR_STATE_CHANGED = "editor-state-changed"


class EventBus:
    """Synchronous publish/subscribe registry keyed by NotesEvent."""

    def __init__(self):
        self._listeners: Dict[NotesEvent, List[Listener]] = {}

    def subscribe(self, event: NotesEvent, listener: Listener) -> None:
        self._listeners.setdefault(event, []).append(listener)

    def unsubscribe(self, event: NotesEvent, listener: Listener) -> bool:
        listeners = self._listeners.get(event, [])
        if listener in listeners:
            listeners.remove(listener)
            return True
        return False

    def emit(self, event: NotesEvent, **payload: Any) -> None:
        for listener in list(self._listeners.get(event, [])):
            try:
                listener(payload)
            except Exception as e:
                logger.error(f"Listener for {event.value} failed: {e}", exc_info=True)
