"""
Booking draft model accumulated across the turns of one session.

This module defines the BookingDraft Pydantic model and the coercion
helpers used to read draft fields back from platform contexts, where ids
may arrive as floats and times as ISO strings.
"""

from datetime import date, time, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator


# Fields in dialogue order; each requires the one before it
DRAFT_FIELD_ORDER = (
    "doctor_id",
    "schedule_id",
    "schedule_time",
    "schedule_date",
    "patient_name",
    "patient_phone",
)

# Fields that must be present before the earlier ones count as filled
_ORDER_DEPENDENCIES = {
    "schedule_id": "doctor_id",
    "schedule_time": "schedule_id",
    "patient_name": "schedule_id",
    "patient_phone": "patient_name",
}

REQUIRED_FOR_CONFIRMATION = ("schedule_id", "patient_name", "patient_phone")


def coerce_id(value: Any) -> Optional[int]:
    """Read an id sent as int, integral float or numeric string."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, float):
        return int(value) if value.is_integer() and value > 0 else None
    if isinstance(value, str):
        text = value.strip()
        try:
            number = float(text)
        except ValueError:
            return None
        return int(number) if number.is_integer() and number > 0 else None
    return None


def coerce_text(value: Any) -> Optional[str]:
    """Read free text, treating blanks as absent."""
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = " ".join(str(value).split())
    return text or None


def coerce_time(value: Any) -> Optional[time]:
    """Read a slot time from a time object, "HH:MM[:SS]" or an ISO datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, time):
        return value
    if isinstance(value, datetime):
        return value.time().replace(tzinfo=None)
    if isinstance(value, str):
        text = value.strip()
        try:
            return time.fromisoformat(text)
        except ValueError:
            pass
        try:
            return datetime.fromisoformat(text).time().replace(tzinfo=None)
        except ValueError:
            return None
    return None


def coerce_date(value: Any) -> Optional[date]:
    """Read a slot date from a date object or an ISO date/datetime string."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            return None
    return None


_COERCERS = {
    "doctor_id": coerce_id,
    "schedule_id": coerce_id,
    "schedule_time": coerce_time,
    "schedule_date": coerce_date,
    "patient_name": coerce_text,
    "patient_phone": coerce_text,
}


class BookingDraft(BaseModel):
    """
    In-progress booking for one session.

    Fields are filled strictly in dialogue order: a later field is never
    set while an earlier required field is absent. Patient name and phone
    are plaintext and transient; only their hashes are ever persisted.

    Attributes:
        doctor_id: Chosen doctor
        schedule_id: Chosen slot
        schedule_time: Time of the chosen slot
        schedule_date: Date of the chosen slot
        patient_name: Patient's full name
        patient_phone: Patient's contact phone
    """

    doctor_id: Optional[int] = Field(default=None, alias="doctorId")
    schedule_id: Optional[int] = Field(default=None, alias="scheduleId")
    schedule_time: Optional[time] = Field(default=None, alias="scheduleTime")
    schedule_date: Optional[date] = Field(default=None, alias="scheduleDate")
    patient_name: Optional[str] = Field(default=None, alias="patientName")
    patient_phone: Optional[str] = Field(default=None, alias="patientPhone")

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    @field_validator("doctor_id", "schedule_id", mode="before")
    @classmethod
    def _validate_id(cls, v: Any) -> Optional[int]:
        if v is None:
            return None
        parsed = coerce_id(v)
        if parsed is None:
            raise ValueError(f"Invalid id: {v!r}")
        return parsed

    @field_validator("patient_name", "patient_phone", mode="before")
    @classmethod
    def _validate_text(cls, v: Any) -> Optional[str]:
        return coerce_text(v)

    @field_validator("schedule_time", mode="before")
    @classmethod
    def _validate_time(cls, v: Any) -> Any:
        return coerce_time(v) if isinstance(v, (str, datetime)) else v

    @field_validator("schedule_date", mode="before")
    @classmethod
    def _validate_date(cls, v: Any) -> Any:
        return coerce_date(v) if isinstance(v, (str, datetime)) else v

    @model_validator(mode="after")
    def _check_dialogue_order(self) -> "BookingDraft":
        for field_name, required in _ORDER_DEPENDENCIES.items():
            if getattr(self, field_name) is not None and getattr(self, required) is None:
                raise ValueError(f"{field_name} cannot be set before {required}")
        return self

    def is_empty(self) -> bool:
        return all(getattr(self, name) is None for name in DRAFT_FIELD_ORDER)

    def missing_for_confirmation(self) -> List[str]:
        """Required fields still absent before the booking can be confirmed."""
        return [name for name in REQUIRED_FOR_CONFIRMATION if getattr(self, name) is None]

    def to_context_parameters(self) -> Dict[str, Any]:
        """Serialize set fields with the platform's camelCase keys."""
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


def parse_context_parameters(parameters: Dict[str, Any]) -> Dict[str, Any]:
    """
    Read draft fields from a context's parameter mapping.

    Unknown keys, blanks and unparseable values are dropped. The result is
    a partial mapping keyed by field name, not yet order-checked.
    """
    fields: Dict[str, Any] = {}
    for name in DRAFT_FIELD_ORDER:
        alias = BookingDraft.model_fields[name].alias
        raw = parameters.get(alias, parameters.get(name))
        value = _COERCERS[name](raw)
        if value is not None:
            fields[name] = value
    return fields
