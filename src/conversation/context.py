"""
Recovering booking state from platform contexts.

This module provides:
- get_context_params: pure lookup of one context's parameters
- DraftResolver: merges the session store with platform contexts
"""

from typing import Any, Dict, Iterable, Optional, Sequence, Union

from loguru import logger

from models.schemas import OutputContext
from .draft import BookingDraft, DRAFT_FIELD_ORDER, parse_context_parameters
from .session_store import SessionStore


ContextLike = Union[OutputContext, Dict[str, Any]]


def context_name(session_id: str, logical_name: str) -> str:
    """Full platform name of a context for this session."""
    return f"{session_id}/contexts/{logical_name}"


def _name_and_parameters(context: ContextLike):
    if isinstance(context, OutputContext):
        return context.name, context.parameters
    return context.get("name") or "", context.get("parameters") or {}


def get_context_params(contexts: Optional[Iterable[ContextLike]], logical_name: str) -> Dict[str, Any]:
    """
    Return the parameters of the first context matching a logical name.

    The platform may spell names with hyphens or underscores, so a context
    matches when its name contains the logical name or its `-`→`_` variant.

    Args:
        contexts: Output contexts of the current turn
        logical_name: Logical context name, e.g. "awaiting-schedule"

    Returns:
        The context's parameter mapping, or {} when no context matches
    """
    if not contexts or not logical_name:
        return {}

    underscored = logical_name.replace("-", "_")
    for context in contexts:
        name, parameters = _name_and_parameters(context)
        if logical_name in name or underscored in name:
            return dict(parameters or {})
    return {}


class DraftResolver:
    """
    Builds the authoritative draft for a turn.

    For each field the session store's value wins; otherwise the first of
    the given contexts carrying the field supplies it. Contexts are the only
    state that survives a restart or an eviction of the session store, while
    the store carries values the contexts may have dropped.
    """

    def __init__(self, store: SessionStore):
        self.store = store

    def resolve(
        self,
        session_id: Optional[str],
        contexts: Optional[Sequence[ContextLike]],
        *context_names: str,
    ) -> BookingDraft:
        """
        Merge the stored draft with the named contexts.

        Args:
            session_id: Platform session id
            contexts: Output contexts of the current turn
            *context_names: Logical context names, most specific first

        Returns:
            Draft holding every field either source could provide. Fields
            that would break dialogue order are left out.
        """
        stored = self.store.get(session_id)
        fields = stored.model_dump(exclude_none=True)

        sources = {}
        for name in context_names:
            from_context = parse_context_parameters(get_context_params(contexts, name))
            for field_name, value in from_context.items():
                if field_name not in fields:
                    fields[field_name] = value
                    sources[field_name] = name

        if sources:
            logger.debug(f"Draft fields recovered from contexts | session={session_id} | sources={sources}")

        return _ordered_draft(fields)


def _ordered_draft(fields: Dict[str, Any]) -> BookingDraft:
    """Build a draft, dropping any field whose predecessor is missing."""
    try:
        return BookingDraft.model_validate(fields)
    except ValueError:
        pass

    kept: Dict[str, Any] = {}
    for name in DRAFT_FIELD_ORDER:
        if name not in fields:
            continue
        candidate = {**kept, name: fields[name]}
        try:
            BookingDraft.model_validate(candidate)
        except ValueError:
            continue
        kept = candidate
    return BookingDraft.model_validate(kept)
