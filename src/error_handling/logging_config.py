"""
Logging setup for the clinic booking webhook.

Each environment maps to a LoggingProfile that decides the level, the
console format and which rotating files receive records. Booking and
conversation events are bound with a category so the booking audit file
can pick them out.
"""
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional
from loguru import logger

DETAILED_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)
SIMPLE_FORMAT = "<level>{level: <8}</level> | <level>{message}</level>"


@dataclass(frozen=True)
class LoggingProfile:
    level: str
    console_format: str = DETAILED_FORMAT
    file_retention: Optional[str] = None
    file_rotation: str = "100 MB"

    @property
    def writes_files(self) -> bool:
        return self.file_retention is not None


PROFILES: Dict[str, LoggingProfile] = {
    "production": LoggingProfile(level="INFO", file_retention="90 days"),
    "development": LoggingProfile(level="DEBUG", file_retention="7 days", file_rotation="50 MB"),
    "test": LoggingProfile(level="WARNING", console_format=SIMPLE_FORMAT),
}


def _is_booking_record(record) -> bool:
    return record["extra"].get("category") == "BOOKING"


def init_logging(
    environment: str = "development",
    log_level: Optional[str] = None,
    log_dir: str = "logs",
) -> LoggingProfile:
    """
    Replace loguru's default sink with the sinks of an environment profile.

    Unknown environments fall back to the development profile.

    Args:
        environment: "production", "development" or "test"
        log_level: Level overriding the profile's default
        log_dir: Directory for the rotating log files

    Returns:
        The profile that was applied
    """
    profile = PROFILES.get(environment, PROFILES["development"])
    level = log_level or profile.level

    logger.remove()
    # Queued so request threads never block on stderr
    logger.add(
        sys.stderr,
        format=profile.console_format,
        level=level,
        colorize=True,
        backtrace=True,
        diagnose=False,
        enqueue=True,
    )

    if profile.writes_files:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        file_options = dict(
            format=DETAILED_FORMAT,
            rotation=profile.file_rotation,
            retention=profile.file_retention,
            compression="zip",
            diagnose=False,
            enqueue=True,
        )
        logger.add(log_path / "webhook_{time:YYYY-MM-DD}.log", level=level, **file_options)
        logger.add(log_path / "errors_{time:YYYY-MM-DD}.log", level="ERROR", **file_options)
        # Audit trail keeps a year regardless of profile
        logger.add(
            log_path / "bookings_{time:YYYY-MM-DD}.log",
            level="INFO",
            filter=_is_booking_record,
            **{**file_options, "rotation": "1 day", "retention": "1 year"},
        )

    logger.info(f"Logging initialized for {environment} environment (level={level})")
    return profile


def _log_event(category: str, event_type: str, session_id: Optional[str], **fields: Any) -> None:
    rendered = " | ".join(f"{key}={value}" for key, value in fields.items())
    logger.bind(category=category).info(f"{category} {event_type} | session={session_id} | {rendered}")


def log_booking_event(
    event_type: str,
    session_id: Optional[str] = None,
    booking_id: Optional[int] = None,
    details: Optional[dict] = None
) -> None:
    """
    Write a booking audit record (RESERVED, RELEASED, REJECTED).

    details must never carry patient plaintext.
    """
    _log_event("BOOKING", event_type, session_id, booking_id=booking_id, details=details or {})


def log_conversation_event(
    event_type: str,
    session_id: Optional[str] = None,
    state: Optional[str] = None,
    details: Optional[dict] = None
) -> None:
    """Write a dialogue record (TURN, STATE_CHANGE, REPROMPT)."""
    _log_event("CONVERSATION", event_type, session_id, state=state, details=details or {})


def log_error_with_context(
    error: Exception,
    context: dict,
    severity: str = "ERROR"
) -> None:
    """
    Log an error with bound context; ERROR and CRITICAL carry the traceback.
    """
    bound = logger.bind(category="ERROR", **context)
    message = f"Error occurred: {type(error).__name__}: {error}"

    if severity in ("ERROR", "CRITICAL"):
        bound.opt(exception=error).log(severity, message)
    else:
        bound.log(severity, message)


def log_context(**context):
    """
    Bind context to every record logged inside the block.

    Example:
        with log_context(session_id="projects/p/agent/sessions/abc", intent="Listar medicos"):
            logger.info("Processing turn")
    """
    return logger.contextualize(**context)
