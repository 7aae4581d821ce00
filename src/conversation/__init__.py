"""
Conversation package for the clinic booking dialogue.

This package provides:
- Intent, BookingState: Enums for the platform intents and dialogue states
- BookingDraft: Pydantic model for the in-progress booking
- SessionStore: Bounded LRU store of drafts keyed by session id
- DraftResolver: Merges the store with platform contexts
- IntentRouter: Total dispatch table from intent to handler
- BookingFlow: The dialogue handlers
"""

from .states import Intent, BookingState
from .draft import BookingDraft
from .session_store import SessionStore
from .context import DraftResolver, get_context_params, context_name
from .turn import Turn
from .router import IntentRouter
from .booking_flow import BookingFlow

__all__ = [
    "Intent",
    "BookingState",
    "BookingDraft",
    "SessionStore",
    "DraftResolver",
    "get_context_params",
    "context_name",
    "Turn",
    "IntentRouter",
    "BookingFlow",
]
