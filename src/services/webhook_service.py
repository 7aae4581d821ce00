"""
WebhookService - turns a platform fulfillment request into a reply.

Each turn gets its own database session; the SessionStore is shared by
every turn of the process. Whatever goes wrong, the platform receives a
well-formed reply with an apology text.
"""
from datetime import date
from typing import Any, Callable, Dict, Optional

from loguru import logger
from pydantic import ValidationError
from sqlalchemy.orm import sessionmaker

from models.database import get_db_session
from models.schemas import WebhookRequest, WebhookResponse
from services.doctor_service import DoctorService
from services.schedule_service import ScheduleService
from services.security import SecurityHasher
from conversation.booking_flow import BookingFlow
from conversation.session_store import SessionStore
from conversation.turn import Turn
from error_handling.exceptions import InvalidRequestError
from error_handling.error_messages import GENERIC_APOLOGY
from error_handling.handlers import log_error
from error_handling.logging_config import log_conversation_event


class WebhookService:
    """
    Entry point for one fulfillment request.

    Attributes:
        session_factory: Factory for per-turn database sessions
        store: Process-wide session draft store
        hasher: Hasher for patient fields
        today: Clock for "today's slots"
    """

    def __init__(
        self,
        store: SessionStore,
        session_factory: Optional[sessionmaker] = None,
        hasher: Optional[SecurityHasher] = None,
        today: Callable[[], date] = date.today,
    ):
        self.store = store
        self.session_factory = session_factory
        self.hasher = hasher or SecurityHasher()
        self.today = today

    def process(self, payload: Any) -> Dict[str, Any]:
        """
        Handle one fulfillment request.

        Args:
            payload: Decoded JSON body of the request

        Returns:
            Reply body with fulfillmentText and, when contexts change,
            outputContexts
        """
        try:
            request = WebhookRequest.model_validate(payload)
            turn = Turn.from_request(request)
        except (ValidationError, InvalidRequestError) as e:
            log_error(e, additional_context={"stage": "parse_request"})
            return self._apology(e)

        log_conversation_event(
            "TURN",
            session_id=turn.session_id,
            details={"intent": turn.intent_name, "parameter_keys": sorted(turn.parameters)},
        )

        try:
            with get_db_session(self.session_factory) as session:
                flow = BookingFlow(
                    doctor_service=DoctorService(session),
                    schedule_service=ScheduleService(session, hasher=self.hasher),
                    store=self.store,
                    today=self.today,
                )
                response = flow.handle(turn)
        except Exception as e:
            log_error(e, session_id=turn.session_id, additional_context={"stage": "handle_turn"})
            return self._apology(e)

        logger.debug(f"Reply ready | session={turn.session_id} | contexts={len(response.output_contexts or [])}")
        return response.to_payload()

    def _apology(self, error: Exception) -> Dict[str, Any]:
        # Only our own request errors carry a message fit for the user
        if isinstance(error, InvalidRequestError):
            text = f"{GENERIC_APOLOGY} ({error.message})"
        else:
            text = GENERIC_APOLOGY
        return WebhookResponse(fulfillment_text=text).to_payload()
