"""
Intent router: maps an intent to its dialogue handler.
"""

from typing import Callable, Dict, Mapping

from loguru import logger

from models.schemas import WebhookResponse
from .states import Intent
from .turn import Turn

Handler = Callable[[Turn], WebhookResponse]


class IntentRouter:
    """
    Total dispatch table from Intent to handler.

    Every Intent member, UNKNOWN included, must have a handler; a table
    with gaps is rejected at construction. The router does no validation
    of parameters.
    """

    def __init__(self, handlers: Mapping[Intent, Handler]):
        missing = [intent.name for intent in Intent if intent not in handlers]
        if missing:
            raise ValueError(f"No handler registered for intents: {missing}")
        self._handlers: Dict[Intent, Handler] = dict(handlers)

    def handler_for(self, intent_name: str) -> Handler:
        intent = Intent.from_display_name(intent_name)
        if intent is Intent.UNKNOWN and intent_name != Intent.UNKNOWN.value:
            logger.info(f"Unrecognized intent routed to fallback: {intent_name!r}")
        return self._handlers[intent]

    def dispatch(self, turn: Turn) -> WebhookResponse:
        return self.handler_for(turn.intent_name)(turn)
