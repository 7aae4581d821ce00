"""
Ordered accessors for the platform's extracted parameters.

The platform may deliver the same user input under different parameter
keys depending on which training phrase matched. Each field has a fixed
priority list of accessors; the first non-empty value wins.
"""

from typing import Any, Callable, Dict, Optional, Sequence, Tuple

Accessor = Tuple[str, Callable[[Dict[str, Any]], Any]]


def key(name: str) -> Accessor:
    """Accessor for a top-level parameter."""
    return name, lambda params: params.get(name)


def nested(*path: str) -> Accessor:
    """Accessor for a structured parameter, e.g. person.name."""
    def read(params: Dict[str, Any]) -> Any:
        value: Any = params
        for part in path:
            if not isinstance(value, dict):
                return None
            value = value.get(part)
        return value
    return ".".join(path), read


DOCTOR_SELECTOR = (key("number"),)
SCHEDULE_SELECTOR = (key("number"),)
PATIENT_NAME = (key("any"), key("patient_name"), nested("person", "name"))
PATIENT_PHONE = (key("phone-number"), key("phone_number"), key("any"))
CANCELLATION_ID = (key("number"), key("scheduleId"), key("any"))


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, dict)):
        return not value
    return False


def first_non_empty(parameters: Optional[Dict[str, Any]], accessors: Sequence[Accessor]) -> Any:
    """
    Evaluate accessors in order and return the first non-empty value.

    Lists (the platform's "is list" parameters) contribute their first
    non-empty element.
    """
    if not parameters:
        return None

    for _, read in accessors:
        value = read(parameters)
        if isinstance(value, list):
            value = next((item for item in value if not _is_empty(item)), None)
        if not _is_empty(value):
            return value
    return None


def parse_selector(value: Any) -> Optional[int]:
    """
    Parse a 1-based menu choice.

    Accepts ints, integral floats (the platform sends numbers as floats)
    and numeric strings. Anything else, including zero and negatives,
    yields None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 1 else None
    if isinstance(value, float):
        return int(value) if value.is_integer() and value >= 1 else None
    if isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
        return int(number) if number.is_integer() and number >= 1 else None
    return None
