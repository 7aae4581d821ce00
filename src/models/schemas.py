"""
Pydantic models for data validation and serialization.

Two groups of models live here:
- Platform wire models for the fulfillment webhook (camelCase aliases)
- Service payloads returned by the doctor and schedule services
"""
from datetime import date, time, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ConfigDict, field_validator


# ============================================================================
# Platform wire models
# ============================================================================

class IntentInfo(BaseModel):
    """Intent recognized by the NLU platform."""
    display_name: str = Field(default="Default Fallback Intent", alias="displayName")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator("display_name", mode="before")
    @classmethod
    def default_blank_name(cls, v):
        return v or "Default Fallback Intent"


class OutputContext(BaseModel):
    """
    Named, time-limited parameter carrier passed between turns.

    The name has the form `<session>/contexts/<logical-name>`.
    """
    name: str
    lifespan_count: int = Field(default=0, alias="lifespanCount")
    parameters: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
        json_schema_extra={
            "example": {
                "name": "projects/clinic/agent/sessions/abc123/contexts/awaiting-schedule",
                "lifespanCount": 3,
                "parameters": {"doctorId": 1, "scheduleCount": 4}
            }
        }
    )

    @field_validator("parameters", mode="before")
    @classmethod
    def null_parameters(cls, v):
        return {} if v is None else v


class QueryResult(BaseModel):
    """Result object of a platform turn."""
    query_text: Optional[str] = Field(default=None, alias="queryText")
    intent: Optional[IntentInfo] = None
    parameters: Dict[str, Any] = Field(default_factory=dict)
    output_contexts: List[OutputContext] = Field(default_factory=list, alias="outputContexts")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator("parameters", "output_contexts", mode="before")
    @classmethod
    def null_as_empty(cls, v, info):
        if v is None:
            return {} if info.field_name == "parameters" else []
        return v

    @property
    def intent_name(self) -> str:
        if self.intent is None:
            return "Default Fallback Intent"
        return self.intent.display_name


class WebhookRequest(BaseModel):
    """Inbound fulfillment request."""
    session: str = ""
    query_result: Optional[QueryResult] = Field(default=None, alias="queryResult")

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
        json_schema_extra={
            "example": {
                "session": "projects/clinic/agent/sessions/abc123",
                "queryResult": {
                    "queryText": "2",
                    "intent": {"displayName": "Listar horarios"},
                    "parameters": {"number": 2},
                    "outputContexts": []
                }
            }
        }
    )


class WebhookResponse(BaseModel):
    """
    Outbound fulfillment response.

    output_contexts is None when the turn does not touch contexts; the key
    is then omitted from the serialized payload.
    """
    fulfillment_text: str = Field(alias="fulfillmentText")
    output_contexts: Optional[List[OutputContext]] = Field(default=None, alias="outputContexts")

    model_config = ConfigDict(populate_by_name=True)

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


# ============================================================================
# Service payloads
# ============================================================================

class DoctorInfo(BaseModel):
    """Doctor listed in the dialogue."""
    id: int
    name: str
    specialty: str

    model_config = ConfigDict(from_attributes=True)


class ScheduleInfo(BaseModel):
    """Available slot offered in the dialogue."""
    id: int
    doctor_id: int
    date: date
    time: time

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {"id": 42, "doctor_id": 1, "date": "2025-03-10", "time": "14:30:00"}
        }
    )


class ReservationResult(BaseModel):
    """
    Successful reservation.

    patient_name and patient_phone are the plaintext values supplied by the
    caller; the stored copies are hashed and cannot be recovered.
    """
    id: int
    doctor_id: int
    date: date
    time: time
    patient_name: str
    patient_phone: str
    booked_at: datetime


class ReleaseResult(BaseModel):
    """Successful release of a booked slot."""
    id: int
    doctor_id: int
    date: date
    time: time
