"""
Process-wide store of in-progress booking drafts, keyed by session id.
"""

import threading
from collections import OrderedDict
from typing import Any, Optional

from loguru import logger

from .draft import BookingDraft


class SessionStore:
    """
    Thread-safe, bounded map of session id to BookingDraft.

    Drafts are evicted least-recently-used once more than `capacity`
    sessions are in progress. A session evicted mid-dialogue can still be
    completed from the platform contexts (see DraftResolver).

    All operations are no-ops for an empty or missing session id.
    """

    def __init__(self, capacity: int = 1000):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._drafts: "OrderedDict[str, BookingDraft]" = OrderedDict()
        self._lock = threading.Lock()

    def set(self, session_id: Optional[str], **fields: Any) -> BookingDraft:
        """
        Merge fields into the session's draft, creating it if absent.

        Fields set to None are ignored; they never erase a stored value.

        Returns:
            Copy of the merged draft

        Raises:
            pydantic.ValidationError: If the merge breaks dialogue order
        """
        if not session_id:
            return BookingDraft()

        updates = {name: value for name, value in fields.items() if value is not None}

        with self._lock:
            existing = self._drafts.get(session_id)
            merged = existing.model_dump() if existing is not None else {}
            merged.update(updates)
            draft = BookingDraft.model_validate(merged)

            self._drafts[session_id] = draft
            self._drafts.move_to_end(session_id)
            evicted = self._evict()

        logger.debug(f"Session draft set | session={session_id} | keys={sorted(draft.model_dump(exclude_none=True))}")
        for evicted_id in evicted:
            logger.info(f"Session draft evicted (capacity={self.capacity}) | session={evicted_id}")

        return draft.model_copy()

    def get(self, session_id: Optional[str]) -> BookingDraft:
        """Return a copy of the session's draft, or an empty draft."""
        if not session_id:
            return BookingDraft()

        with self._lock:
            draft = self._drafts.get(session_id)
            if draft is not None:
                self._drafts.move_to_end(session_id)

        if draft is None:
            logger.debug(f"Session draft miss | session={session_id}")
            return BookingDraft()

        logger.debug(f"Session draft get | session={session_id} | keys={sorted(draft.model_dump(exclude_none=True))}")
        return draft.model_copy()

    def clear(self, session_id: Optional[str]) -> None:
        """Remove the session's draft if present."""
        if not session_id:
            return

        with self._lock:
            removed = self._drafts.pop(session_id, None)

        if removed is not None:
            logger.debug(f"Session draft cleared | session={session_id}")

    def _evict(self) -> list:
        evicted = []
        while len(self._drafts) > self.capacity:
            session_id, _ = self._drafts.popitem(last=False)
            evicted.append(session_id)
        return evicted

    def __len__(self) -> int:
        with self._lock:
            return len(self._drafts)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._drafts
