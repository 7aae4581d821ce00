"""
Dialogue tests for BookingFlow.

Tests cover:
- The full booking dialogue, turn by turn
- Numbered selections out of range
- Draft recovery from platform contexts
- Confirmation with an incomplete draft
- Conflicts at confirmation time
- Cancellation
"""
from datetime import time
from unittest.mock import Mock

import pytest

from conftest import SESSION, TODAY, make_context, make_turn, context_by_name
from models.database import Schedule, SlotStatus
from services.doctor_service import DoctorService
from conversation.booking_flow import BookingFlow
from conversation.session_store import SessionStore
from error_handling.error_messages import INCOMPLETE_DRAFT, NOT_UNDERSTOOD
from error_handling.exceptions import DatabaseError


def load_slot(session_factory, slot_id: int) -> Schedule:
    with session_factory() as session:
        return session.get(Schedule, slot_id)


def run_until_confirmation(flow, seeded):
    """Drive the dialogue from doctor list to the confirmation summary."""
    flow.handle(make_turn("Listar medicos"))
    listed = flow.handle(make_turn("Listar horarios", {"number": 1.0}))
    chosen = flow.handle(make_turn(
        "Listar horarios",
        {"number": 2.0},
        [context_by_name(listed, "awaiting-schedule")],
    ))
    named = flow.handle(make_turn(
        "Informar nome",
        {"any": "Maria Silva"},
        [context_by_name(chosen, "awaiting-name")],
    ))
    return flow.handle(make_turn(
        "Informar celular",
        {"phone-number": "11999990000"},
        [context_by_name(named, "awaiting-phone")],
    ))


# Tests for the Happy Path

class TestHappyPath:
    """A patient books Ana Souza at 09:30 today."""

    def test_list_doctors(self, flow, seeded):
        response = flow.handle(make_turn("Listar medicos"))

        assert "1. Ana Souza - Clínica Geral" in response.fulfillment_text
        assert "2. Bruno Lima - Cardiologia" in response.fulfillment_text
        assert "Carlos Dias" not in response.fulfillment_text
        assert response.output_contexts is None

    def test_choose_doctor_lists_todays_slots(self, flow, store, seeded):
        response = flow.handle(make_turn("Listar horarios", {"number": 1}))

        assert "1 - 09:00\n2 - 09:30\n3 - 10:00" in response.fulfillment_text
        assert "11:00" not in response.fulfillment_text

        context = context_by_name(response, "awaiting-schedule")
        assert context.lifespan_count == 3
        assert context.parameters == {"doctorId": seeded.ana, "scheduleCount": 3}
        assert context.name == f"{SESSION}/contexts/awaiting-schedule"
        assert store.get(SESSION).doctor_id == seeded.ana

    def test_choose_schedule(self, flow, store, seeded):
        listed = flow.handle(make_turn("Listar horarios", {"number": 1}))
        response = flow.handle(make_turn(
            "Listar horarios", {"number": 2}, [context_by_name(listed, "awaiting-schedule")]
        ))

        assert "Você escolheu o horário 09:30" in response.fulfillment_text
        assert "nome completo" in response.fulfillment_text

        context = context_by_name(response, "awaiting-name")
        assert context.lifespan_count == 3
        assert context.parameters["scheduleId"] == seeded.ana_0930
        assert context.parameters["scheduleTime"] == "09:30:00"

        draft = store.get(SESSION)
        assert draft.schedule_id == seeded.ana_0930
        assert draft.schedule_time == time(9, 30)

    def test_summary_before_confirmation(self, flow, store, seeded):
        response = run_until_confirmation(flow, seeded)

        text = response.fulfillment_text
        assert "📅 Data: 10/03/2025" in text
        assert "⏰ Horário: 09:30" in text
        assert "👤 Nome: Maria Silva" in text
        assert "📞 Telefone: 11999990000" in text
        assert 'Digite "sim" para confirmar' in text

        assert context_by_name(response, "awaiting-confirmation").lifespan_count == 5
        booking_data = context_by_name(response, "booking-data")
        assert booking_data.lifespan_count == 10
        assert booking_data.parameters["patientName"] == "Maria Silva"

        draft = store.get(SESSION)
        assert draft.missing_for_confirmation() == []

    def test_confirm_books_slot(self, flow, store, session_factory, hasher, seeded):
        summary = run_until_confirmation(flow, seeded)
        response = flow.handle(make_turn(
            "Confirmar agendamento",
            {},
            [context_by_name(summary, "awaiting-confirmation"), context_by_name(summary, "booking-data")],
        ))

        text = response.fulfillment_text
        assert text.startswith("✅ Agendamento confirmado com sucesso!")
        assert f"🎫 Código do agendamento: {seeded.ana_0930}." in text
        assert "👤 Paciente: Maria Silva" in text

        # Every booking context is cleared
        assert response.output_contexts
        assert all(c.lifespan_count == 0 for c in response.output_contexts)
        assert SESSION not in store

        slot = load_slot(session_factory, seeded.ana_0930)
        assert slot.status == SlotStatus.BOOKED
        assert slot.patient_phone == hasher.hash_phone("11999990000")


# Tests for Selections

class TestSelections:
    """Numbered choices outside the offered list."""

    @pytest.mark.parametrize("number", [0, 4, 2.5, "abc"])
    def test_invalid_schedule_selector(self, flow, store, seeded, number):
        """The reply asks again and the dialogue stays on schedule choice."""
        awaiting = make_context("awaiting-schedule", {"doctorId": seeded.ana, "scheduleCount": 3})
        response = flow.handle(make_turn("Listar horarios", {"number": number}, [awaiting]))

        assert response.fulfillment_text == "Horário inválido. Por favor, escolha um número da lista."
        context = context_by_name(response, "awaiting-schedule")
        assert context.lifespan_count == 3
        assert context.parameters["doctorId"] == seeded.ana
        assert store.get(SESSION).schedule_id is None

    def test_missing_schedule_selector(self, flow, seeded):
        awaiting = make_context("awaiting-schedule", {"doctorId": seeded.ana})
        response = flow.handle(make_turn("Listar horarios", {}, [awaiting]))

        assert response.fulfillment_text.startswith("Horário inválido")

    @pytest.mark.parametrize("number", [0, 3, -1])
    def test_invalid_doctor_selector(self, flow, store, seeded, number):
        response = flow.handle(make_turn("Listar horarios", {"number": number}))

        assert "Médico inválido" in response.fulfillment_text
        assert response.output_contexts is None
        assert SESSION not in store

    def test_missing_doctor_selector(self, flow, seeded):
        response = flow.handle(make_turn("Listar horarios", {}))
        assert response.fulfillment_text == "Informe o número do médico."

    def test_doctor_without_slots_today(self, flow, schedule_service, seeded):
        assert schedule_service.reserve(seeded.bruno_1400, "Maria Silva", "11999990000").ok

        response = flow.handle(make_turn("Listar horarios", {"number": 2}))

        assert response.fulfillment_text == "Nenhum horário disponível para hoje."
        assert response.output_contexts is None

    def test_new_doctor_choice_discards_old_draft(self, flow, store, seeded):
        store.set(SESSION, doctor_id=seeded.bruno, schedule_id=seeded.bruno_1400, patient_name="Maria Silva")

        flow.handle(make_turn("Listar horarios", {"number": 1}))

        draft = store.get(SESSION)
        assert draft.doctor_id == seeded.ana
        assert draft.schedule_id is None
        assert draft.patient_name is None


# Tests for Draft Recovery

class TestDraftRecovery:
    """The platform contexts complete a draft the session store lost."""

    def test_schedule_choice_uses_context_doctor(self, flow, store, seeded):
        """With an empty store the doctor comes from the awaiting-schedule context."""
        assert SESSION not in store
        awaiting = make_context("awaiting_schedule", {"doctorId": float(seeded.bruno)})

        response = flow.handle(make_turn("Listar horarios", {"number": 1}, [awaiting]))

        assert "14:00" in response.fulfillment_text
        draft = store.get(SESSION)
        assert draft.doctor_id == seeded.bruno
        assert draft.schedule_id == seeded.bruno_1400

    def test_store_value_wins_over_context(self, flow, store, seeded):
        store.set(SESSION, doctor_id=seeded.ana)
        awaiting = make_context("awaiting-schedule", {"doctorId": seeded.bruno})

        response = flow.handle(make_turn("Listar horarios", {"number": 1}, [awaiting]))

        assert "09:00" in response.fulfillment_text
        assert store.get(SESSION).schedule_id == seeded.ana_0900

    def test_confirm_after_eviction(self, db_session, hasher, session_factory, seeded):
        """A store that evicted the session still confirms from booking-data."""
        from services.schedule_service import ScheduleService

        store = SessionStore(capacity=1)
        flow = BookingFlow(DoctorService(db_session), ScheduleService(db_session, hasher=hasher), store, lambda: TODAY)
        store.set(SESSION, doctor_id=seeded.ana)
        store.set("projects/clinic/agent/sessions/other", doctor_id=seeded.bruno)
        assert SESSION not in store

        booking_data = make_context("booking-data", {
            "doctorId": seeded.ana,
            "scheduleId": seeded.ana_1000,
            "scheduleTime": "10:00:00",
            "scheduleDate": TODAY.isoformat(),
            "patientName": "Maria Silva",
            "patientPhone": "11999990000",
        }, lifespan=10)

        response = flow.handle(make_turn("Confirmar agendamento", {}, [booking_data]))

        assert f"Código do agendamento: {seeded.ana_1000}." in response.fulfillment_text
        assert load_slot(session_factory, seeded.ana_1000).status == SlotStatus.BOOKED

    def test_name_without_schedule(self, flow, store, seeded):
        store.set(SESSION, doctor_id=seeded.ana)

        response = flow.handle(make_turn("Informar nome", {"any": "Maria Silva"}))

        assert "liste os médicos novamente" in response.fulfillment_text
        assert store.get(SESSION).patient_name is None

    def test_blank_name_reprompts(self, flow, seeded):
        response = flow.handle(make_turn("Informar nome", {"any": "   "}))
        assert response.fulfillment_text == "Por favor, informe seu nome completo."

    def test_name_from_person_parameter(self, flow, store, seeded):
        store.set(SESSION, doctor_id=seeded.ana, schedule_id=seeded.ana_0900, schedule_time=time(9, 0))

        response = flow.handle(make_turn("Informar nome", {"person": {"name": "João Souza"}}))

        assert response.fulfillment_text.startswith("Obrigado, João Souza!")
        assert store.get(SESSION).patient_name == "João Souza"

    def test_blank_phone_reprompts(self, flow, seeded):
        response = flow.handle(make_turn("Informar celular", {"phone-number": ""}))
        assert response.fulfillment_text == "Por favor, informe seu telefone."


# Tests for Confirmation

class TestConfirmation:
    """Confirmation guards and conflicts."""

    @pytest.mark.parametrize("fields", [
        {},
        {"schedule_id": "ana_0900"},
        {"schedule_id": "ana_0900", "patient_name": "Maria Silva"},
    ])
    def test_incomplete_draft_never_reaches_store(self, db_session, store, seeded, fields):
        """A draft missing the slot or patient data is answered without any reservation attempt."""
        schedule_service = Mock()
        flow = BookingFlow(DoctorService(db_session), schedule_service, store, lambda: TODAY)
        if "schedule_id" in fields:
            fields = {**fields, "schedule_id": getattr(seeded, fields["schedule_id"])}
        store.set(SESSION, doctor_id=seeded.ana, **fields)

        response = flow.handle(make_turn("Confirmar agendamento"))

        assert response.fulfillment_text == INCOMPLETE_DRAFT
        schedule_service.reserve.assert_not_called()
        assert all(c.lifespan_count == 0 for c in response.output_contexts)

    def test_slot_taken_before_confirmation(self, flow, store, schedule_service, session_factory, seeded):
        """Losing the slot keeps the draft and stays on confirmation."""
        summary = run_until_confirmation(flow, seeded)
        assert schedule_service.reserve(seeded.ana_0930, "João Souza", "11888880000").ok

        response = flow.handle(make_turn(
            "Confirmar agendamento", {}, [context_by_name(summary, "awaiting-confirmation")]
        ))

        assert response.fulfillment_text == (
            "Desculpe, houve um erro ao confirmar o agendamento: "
            "Horário não está mais disponível. Por favor, tente novamente."
        )
        assert context_by_name(response, "awaiting-confirmation").lifespan_count == 5
        assert store.get(SESSION).patient_name == "Maria Silva"


# Tests for Cancellation

class TestCancellation:
    """Cancelling an existing booking by its code."""

    def test_cancel_booked_slot(self, flow, store, session_factory, seeded):
        store.set(SESSION, doctor_id=seeded.ana)

        response = flow.handle(make_turn("Confirmar cancelamento", {"number": float(seeded.ana_1100_booked)}))

        assert response.fulfillment_text.startswith("✅ Agendamento cancelado com sucesso!")
        assert all(c.lifespan_count == 0 for c in response.output_contexts)
        assert SESSION not in store
        assert load_slot(session_factory, seeded.ana_1100_booked).status == SlotStatus.AVAILABLE

    def test_cancel_without_code(self, flow, seeded):
        response = flow.handle(make_turn("Confirmar cancelamento"))
        assert response.fulfillment_text == "Por favor, informe o ID do agendamento que deseja cancelar."

    def test_cancel_invalid_code(self, flow, seeded):
        response = flow.handle(make_turn("Confirmar cancelamento", {"any": "amanhã"}))
        assert "inválido" in response.fulfillment_text

    def test_cancel_slot_not_booked(self, flow, seeded):
        response = flow.handle(make_turn("Confirmar cancelamento", {"number": seeded.ana_0900}))

        assert response.fulfillment_text == (
            "Erro ao cancelar o agendamento: Agendamento não está marcado. Tente novamente."
        )
        assert response.output_contexts is None

    def test_cancel_unknown_code(self, flow, seeded):
        response = flow.handle(make_turn("Confirmar cancelamento", {"number": 9999}))
        assert "Agendamento não encontrado" in response.fulfillment_text


# Tests for Fallbacks

class TestFallbacks:
    """Unknown intents, empty catalogues and unexpected failures."""

    def test_unknown_intent(self, flow):
        response = flow.handle(make_turn("Pedir pizza"))
        assert response.fulfillment_text == NOT_UNDERSTOOD

    def test_no_doctors(self, flow):
        response = flow.handle(make_turn("Listar medicos"))

        assert response.fulfillment_text == "Nenhum médico cadastrado."
        assert response.to_payload() == {"fulfillmentText": "Nenhum médico cadastrado."}

    def test_unexpected_failure_becomes_reply(self, store):
        doctor_service = Mock()
        doctor_service.get_active_doctors.side_effect = DatabaseError("db down", operation="get_active_doctors")
        flow = BookingFlow(doctor_service, Mock(), store, lambda: TODAY)

        response = flow.handle(make_turn("Listar medicos"))

        assert response.fulfillment_text == "Erro ao buscar os médicos disponíveis. Tente novamente."
