"""
Booking dialogue state machine.

This module provides the BookingFlow class that handles each intent of the
appointment dialogue:

    list doctors -> choose doctor -> choose slot -> name -> phone -> confirm

plus cancellation of an existing booking from any state. Each handler
validates its input, advances the session draft and returns the platform
reply (fulfillment text and the contexts for the next turn).
"""

from datetime import date
from typing import Callable, Dict, List, Optional

from loguru import logger

from models.schemas import OutputContext, WebhookResponse, ScheduleInfo
from services.doctor_service import DoctorService
from services.schedule_service import ScheduleService
from error_handling.exceptions import IncompleteDraftError
from error_handling.error_messages import (
    GENERIC_APOLOGY,
    NOT_UNDERSTOOD,
    INCOMPLETE_DRAFT,
    format_time_short,
    format_date_br,
    booking_failed_message,
    cancellation_failed_message,
)
from error_handling.handlers import log_error
from error_handling.logging_config import (
    log_context,
    log_booking_event,
    log_conversation_event,
)
from .context import DraftResolver, context_name, get_context_params
from .draft import BookingDraft, coerce_id, coerce_text
from .parameters import (
    DOCTOR_SELECTOR,
    SCHEDULE_SELECTOR,
    PATIENT_NAME,
    PATIENT_PHONE,
    CANCELLATION_ID,
    first_non_empty,
    parse_selector,
)
from .router import IntentRouter
from .session_store import SessionStore
from .states import (
    Intent,
    BookingState,
    STAGE_CONTEXTS,
    BOOKING_DATA_CONTEXT,
    STAGE_LIFESPAN,
    CONFIRMATION_LIFESPAN,
    BOOKING_DATA_LIFESPAN,
)
from .turn import Turn


AWAITING_SCHEDULE = STAGE_CONTEXTS[BookingState.AWAITING_SCHEDULE_CHOICE]
AWAITING_NAME = STAGE_CONTEXTS[BookingState.AWAITING_NAME]
AWAITING_PHONE = STAGE_CONTEXTS[BookingState.AWAITING_PHONE]
AWAITING_CONFIRMATION = STAGE_CONTEXTS[BookingState.AWAITING_CONFIRMATION]

# Reply when a handler fails unexpectedly
ERROR_REPLIES: Dict[Intent, str] = {
    Intent.LIST_DOCTORS: "Erro ao buscar os médicos disponíveis. Tente novamente.",
    Intent.LIST_SCHEDULES: "Erro ao buscar os horários disponíveis. Tente novamente.",
    Intent.CONFIRM_BOOKING: "Desculpe, houve um erro ao confirmar o agendamento. Por favor, tente novamente.",
    Intent.CONFIRM_CANCELLATION: "Erro ao cancelar o agendamento. Tente novamente.",
}


def _reply(text: str, contexts: Optional[List[OutputContext]] = None) -> WebhookResponse:
    return WebhookResponse(fulfillment_text=text, output_contexts=contexts)


class BookingFlow:
    """
    Handlers for the six booking intents plus the fallback.

    One BookingFlow serves one turn: it is built around the turn's database
    session, while the SessionStore is shared by every turn of the process.

    Attributes:
        store: Shared session draft store
        resolver: Merges the store with the turn's contexts
        router: Dispatch table from intent to handler
    """

    def __init__(
        self,
        doctor_service: DoctorService,
        schedule_service: ScheduleService,
        store: SessionStore,
        today: Callable[[], date] = date.today,
    ):
        """
        Initialize the booking flow.

        Args:
            doctor_service: Doctor reads for this turn
            schedule_service: Slot reads and the reservation transaction
            store: Process-wide session draft store
            today: Clock for "today's slots" (injectable for tests)
        """
        self.doctor_service = doctor_service
        self.schedule_service = schedule_service
        self.store = store
        self.resolver = DraftResolver(store)
        self.today = today
        self.router = IntentRouter({
            Intent.LIST_DOCTORS: self.handle_list_doctors,
            Intent.LIST_SCHEDULES: self.handle_list_schedules,
            Intent.INFORM_NAME: self.handle_inform_name,
            Intent.INFORM_PHONE: self.handle_inform_phone,
            Intent.CONFIRM_BOOKING: self.handle_confirm_booking,
            Intent.CONFIRM_CANCELLATION: self.handle_confirm_cancellation,
            Intent.UNKNOWN: self.handle_fallback,
        })

    def handle(self, turn: Turn) -> WebhookResponse:
        """
        Answer one turn.

        Expected failures are part of each handler's reply. Anything
        unexpected is logged and answered with an apology, so the platform
        always receives a normal reply.
        """
        intent = Intent.from_display_name(turn.intent_name)
        with log_context(session_id=turn.session_id, intent=intent.name):
            try:
                return self.router.dispatch(turn)
            except Exception as e:
                log_error(e, session_id=turn.session_id, additional_context={"intent": intent.name})
                return _reply(ERROR_REPLIES.get(intent, GENERIC_APOLOGY))

    # ------------------------------------------------------------------
    # Context helpers
    # ------------------------------------------------------------------

    def _context(self, turn: Turn, logical_name: str, lifespan: int, parameters: dict) -> OutputContext:
        return OutputContext(
            name=context_name(turn.session_id, logical_name),
            lifespan_count=lifespan,
            parameters=parameters,
        )

    def _cleared_contexts(self, turn: Turn) -> List[OutputContext]:
        """Lifespan-0 entries that make the platform drop every booking context."""
        names = list(STAGE_CONTEXTS.values()) + [BOOKING_DATA_CONTEXT]
        return [self._context(turn, name, 0, {}) for name in names]

    def _schedule_choice_context(self, turn: Turn, doctor_id: int, schedules: List[ScheduleInfo]) -> OutputContext:
        return self._context(turn, AWAITING_SCHEDULE, STAGE_LIFESPAN, {
            "doctorId": doctor_id,
            "scheduleCount": len(schedules),
        })

    def _advance(self, turn: Turn, draft: BookingDraft, **fields) -> BookingDraft:
        """Write the resolved draft plus the new fields back to the store."""
        merged = {**draft.model_dump(exclude_none=True), **fields}
        self.store.set(turn.session_id, **merged)
        return BookingDraft.model_validate(merged)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def handle_list_doctors(self, turn: Turn) -> WebhookResponse:
        doctors = self.doctor_service.get_active_doctors()

        if not doctors:
            return _reply("Nenhum médico cadastrado.")

        listing = "\n".join(
            f"{index}. {doctor.name} - {doctor.specialty}"
            for index, doctor in enumerate(doctors, start=1)
        )
        return _reply(
            "Perfeito! Aqui estão os médicos disponíveis. "
            f"Digite o número correspondente para escolher:\n\n{listing}"
        )

    def handle_list_schedules(self, turn: Turn) -> WebhookResponse:
        """
        Doctor choice, or slot choice when the schedule list was already shown.
        """
        previous = get_context_params(turn.contexts, AWAITING_SCHEDULE)
        if coerce_id(previous.get("doctorId")) is not None:
            return self.handle_choose_schedule(turn)

        raw_selector = first_non_empty(turn.parameters, DOCTOR_SELECTOR)
        if raw_selector is None:
            return _reply("Informe o número do médico.")

        outcome = self.doctor_service.get_doctor_by_position(parse_selector(raw_selector))
        if not outcome.ok:
            log_error(outcome.error, session_id=turn.session_id, state=BookingState.IDLE.value)
            return _reply("Médico inválido. Por favor, escolha um número da lista de médicos.")

        doctor = outcome.value
        schedules = self.schedule_service.get_available_schedules_by_doctor(doctor.id, self.today())

        if not schedules:
            return _reply("Nenhum horário disponível para hoje.")

        # A new doctor choice starts a new draft
        self.store.clear(turn.session_id)
        self.store.set(turn.session_id, doctor_id=doctor.id)

        listing = "\n".join(
            f"{index} - {format_time_short(schedule.time)}"
            for index, schedule in enumerate(schedules, start=1)
        )

        log_conversation_event(
            "STATE_CHANGE",
            session_id=turn.session_id,
            state=BookingState.AWAITING_SCHEDULE_CHOICE.value,
            details={"doctor_id": doctor.id, "schedule_count": len(schedules)},
        )
        return _reply(
            f"Aqui estão os horários disponíveis para hoje, escolha um número para agendar:\n\n{listing}",
            [self._schedule_choice_context(turn, doctor.id, schedules)],
        )

    def handle_choose_schedule(self, turn: Turn) -> WebhookResponse:
        draft = self.resolver.resolve(turn.session_id, turn.contexts, AWAITING_SCHEDULE)

        if draft.doctor_id is None:
            return _reply(
                "Não foi possível encontrar os dados do médico. "
                "Por favor, liste os médicos novamente."
            )

        today = self.today()
        schedules = self.schedule_service.get_available_schedules_by_doctor(draft.doctor_id, today)

        if not schedules:
            return _reply("Nenhum horário disponível para hoje.", self._cleared_contexts(turn))

        selector = parse_selector(first_non_empty(turn.parameters, SCHEDULE_SELECTOR))
        if selector is None or not 1 <= selector <= len(schedules):
            return _reply(
                "Horário inválido. Por favor, escolha um número da lista.",
                [self._schedule_choice_context(turn, draft.doctor_id, schedules)],
            )

        chosen = schedules[selector - 1]
        updated = self._advance(
            turn,
            draft,
            schedule_id=chosen.id,
            schedule_time=chosen.time,
            schedule_date=chosen.date,
        )

        log_conversation_event(
            "STATE_CHANGE",
            session_id=turn.session_id,
            state=BookingState.AWAITING_NAME.value,
            details={"schedule_id": chosen.id},
        )
        return _reply(
            f"Perfeito! Você escolheu o horário {format_time_short(chosen.time)}.\n\n"
            "Agora, por favor, me informe seu nome completo:",
            [self._context(turn, AWAITING_NAME, STAGE_LIFESPAN, updated.to_context_parameters())],
        )

    def handle_inform_name(self, turn: Turn) -> WebhookResponse:
        patient_name = coerce_text(first_non_empty(turn.parameters, PATIENT_NAME))

        if not patient_name:
            return _reply("Por favor, informe seu nome completo.")

        draft = self.resolver.resolve(turn.session_id, turn.contexts, AWAITING_NAME, BOOKING_DATA_CONTEXT)
        if draft.schedule_id is None:
            return _reply(
                "Não encontrei o horário escolhido. Por favor, liste os médicos novamente.",
                self._cleared_contexts(turn),
            )

        updated = self._advance(turn, draft, patient_name=patient_name)

        log_conversation_event(
            "STATE_CHANGE",
            session_id=turn.session_id,
            state=BookingState.AWAITING_PHONE.value,
        )
        return _reply(
            f"Obrigado, {patient_name}! Agora, por favor, me informe seu telefone para contato:",
            [self._context(turn, AWAITING_PHONE, STAGE_LIFESPAN, updated.to_context_parameters())],
        )

    def handle_inform_phone(self, turn: Turn) -> WebhookResponse:
        patient_phone = coerce_text(first_non_empty(turn.parameters, PATIENT_PHONE))

        if not patient_phone:
            return _reply("Por favor, informe seu telefone.")

        draft = self.resolver.resolve(
            turn.session_id, turn.contexts, AWAITING_PHONE, AWAITING_NAME, BOOKING_DATA_CONTEXT
        )
        if draft.schedule_id is None or draft.patient_name is None:
            return _reply(
                "Não encontrei os dados do seu agendamento. Por favor, comece novamente.",
                self._cleared_contexts(turn),
            )

        updated = self._advance(turn, draft, patient_phone=patient_phone)
        parameters = updated.to_context_parameters()

        log_conversation_event(
            "STATE_CHANGE",
            session_id=turn.session_id,
            state=BookingState.AWAITING_CONFIRMATION.value,
        )
        return _reply(
            "Perfeito! Vamos confirmar seu agendamento:\n\n"
            f"📅 Data: {format_date_br(self.today())}\n"
            f"⏰ Horário: {format_time_short(updated.schedule_time)}\n"
            f"👤 Nome: {updated.patient_name}\n"
            f"📞 Telefone: {updated.patient_phone}\n\n"
            'Confirma o agendamento? (Digite "sim" para confirmar)',
            [
                self._context(turn, AWAITING_CONFIRMATION, CONFIRMATION_LIFESPAN, parameters),
                self._context(turn, BOOKING_DATA_CONTEXT, BOOKING_DATA_LIFESPAN, parameters),
            ],
        )

    def handle_confirm_booking(self, turn: Turn) -> WebhookResponse:
        draft = self.resolver.resolve(
            turn.session_id, turn.contexts, AWAITING_CONFIRMATION, BOOKING_DATA_CONTEXT
        )

        missing = draft.missing_for_confirmation()
        if missing:
            log_error(
                IncompleteDraftError(missing),
                session_id=turn.session_id,
                state=BookingState.AWAITING_CONFIRMATION.value,
            )
            return _reply(INCOMPLETE_DRAFT, self._cleared_contexts(turn))

        outcome = self.schedule_service.reserve(draft.schedule_id, draft.patient_name, draft.patient_phone)

        if not outcome.ok:
            log_error(outcome.error, session_id=turn.session_id, state=BookingState.AWAITING_CONFIRMATION.value)
            log_booking_event(
                "REJECTED",
                session_id=turn.session_id,
                booking_id=draft.schedule_id,
                details={"reason": outcome.kind.value},
            )
            return _reply(
                booking_failed_message(outcome.error),
                [self._context(turn, AWAITING_CONFIRMATION, CONFIRMATION_LIFESPAN, draft.to_context_parameters())],
            )

        booking = outcome.value
        self.store.clear(turn.session_id)

        log_booking_event(
            "RESERVED",
            session_id=turn.session_id,
            booking_id=booking.id,
            details={"doctor_id": booking.doctor_id, "date": booking.date.isoformat(), "time": booking.time.isoformat()},
        )
        log_conversation_event("STATE_CHANGE", session_id=turn.session_id, state=BookingState.CONFIRMED.value)

        return _reply(
            "✅ Agendamento confirmado com sucesso!\n\n"
            f"📅 Data: {format_date_br(booking.date)}\n"
            f"⏰ Horário: {format_time_short(booking.time)}\n"
            f"👤 Paciente: {booking.patient_name}\n"
            f"📞 Telefone: {booking.patient_phone}\n\n"
            f"🎫 Código do agendamento: {booking.id}.\n\n"
            "Até logo!",
            self._cleared_contexts(turn),
        )

    def handle_confirm_cancellation(self, turn: Turn) -> WebhookResponse:
        raw_id = first_non_empty(turn.parameters, CANCELLATION_ID)

        if raw_id is None:
            return _reply("Por favor, informe o ID do agendamento que deseja cancelar.")

        slot_id = coerce_id(raw_id)
        if slot_id is None:
            return _reply("Código de agendamento inválido. Por favor, informe o número do agendamento.")

        outcome = self.schedule_service.release(slot_id)

        if not outcome.ok:
            log_error(outcome.error, session_id=turn.session_id)
            return _reply(cancellation_failed_message(outcome.error))

        self.store.clear(turn.session_id)

        log_booking_event("RELEASED", session_id=turn.session_id, booking_id=slot_id)
        log_conversation_event("STATE_CHANGE", session_id=turn.session_id, state=BookingState.CANCELLED.value)

        return _reply(
            "✅ Agendamento cancelado com sucesso! O horário foi liberado e está disponível novamente.",
            self._cleared_contexts(turn),
        )

    def handle_fallback(self, turn: Turn) -> WebhookResponse:
        logger.debug(f"Fallback reply for intent {turn.intent_name!r}")
        return _reply(NOT_UNDERSTOOD)
