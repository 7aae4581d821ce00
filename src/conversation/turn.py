"""
One request/response cycle with the conversational platform.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List

from models.schemas import OutputContext, WebhookRequest
from error_handling.exceptions import InvalidRequestError


@dataclass
class Turn:
    """
    Inputs of a single turn, as seen by the dialogue handlers.

    Attributes:
        session_id: Opaque session identifier supplied by the platform
        intent_name: Display name of the recognized intent
        parameters: Extracted parameters
        contexts: Output contexts carried over from the previous turn
    """
    session_id: str
    intent_name: str
    parameters: Dict[str, Any] = field(default_factory=dict)
    contexts: List[OutputContext] = field(default_factory=list)

    @classmethod
    def from_request(cls, request: WebhookRequest) -> "Turn":
        """
        Raises:
            InvalidRequestError: If the request has no queryResult
        """
        if request.query_result is None:
            raise InvalidRequestError("queryResult ausente")

        query = request.query_result
        return cls(
            session_id=request.session,
            intent_name=query.intent_name,
            parameters=dict(query.parameters or {}),
            contexts=list(query.output_contexts or []),
        )
