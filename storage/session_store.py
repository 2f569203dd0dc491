from abc import ABC, abstractmethod
from collections import OrderedDict
from threading import RLock
from typing import List
import uuid

from core.settings import EditorSettings
from services.editor_service import TableEditor


class SessionStorage(ABC):
    @abstractmethod
    def create(self, editor: TableEditor | None = None) -> str:
        """Stores an editing session, returns its ID"""
        pass

    @abstractmethod
    def get(self, session_id: str) -> TableEditor:
        """Session by ID (KeyError when unknown)"""
        pass

    @abstractmethod
    def delete(self, session_id: str) -> bool:
        """Removes a session"""
        pass

    @abstractmethod
    def list_ids(self) -> List[str]:
        """IDs of live sessions, most recently used last"""
        pass

    @abstractmethod
    def cleanup_all(self) -> None:
        """Removes every session"""
        pass


class InMemorySessionStorage(SessionStorage):
    """Bounded in-memory LRU of editing sessions.

    Tables are only persisted as exported .ptab text; evicted sessions are gone.
    """

    def __init__(self, settings: EditorSettings | None = None, max_items: int | None = None):
        self.settings = settings or EditorSettings()
        self._max_items = int(max_items if max_items is not None else self.settings.max_sessions)
        self._lock = RLock()
        self._data: OrderedDict[str, TableEditor] = OrderedDict()

    def create(self, editor: TableEditor | None = None) -> str:
        session_id = str(uuid.uuid4())
        with self._lock:
            self._data[session_id] = editor or TableEditor(settings=self.settings)
            while len(self._data) > self._max_items:
                self._data.popitem(last=False)
        return session_id

    def get(self, session_id: str) -> TableEditor:
        with self._lock:
            if session_id not in self._data:
                raise KeyError(session_id)
            # Refresh LRU order
            self._data.move_to_end(session_id)
            return self._data[session_id]

    def delete(self, session_id: str) -> bool:
        with self._lock:
            return self._data.pop(session_id, None) is not None

    def list_ids(self) -> List[str]:
        with self._lock:
            return list(self._data)

    def cleanup_all(self) -> None:
        with self._lock:
            self._data.clear()
