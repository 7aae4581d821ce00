"""
Tests for SessionStore and the BookingDraft model.
"""
import threading
from datetime import date, time

import pytest
from pydantic import ValidationError

from conversation.draft import BookingDraft, parse_context_parameters, coerce_id, coerce_time
from conversation.session_store import SessionStore


class TestBookingDraft:
    """Test dialogue-order validation and context serialization."""

    def test_empty_draft(self):
        draft = BookingDraft()
        assert draft.is_empty()
        assert draft.missing_for_confirmation() == ["schedule_id", "patient_name", "patient_phone"]

    def test_rejects_schedule_without_doctor(self):
        with pytest.raises(ValidationError):
            BookingDraft(schedule_id=3)

    def test_rejects_phone_without_name(self):
        with pytest.raises(ValidationError):
            BookingDraft(doctor_id=1, schedule_id=3, patient_phone="11999990000")

    def test_accepts_camel_case_and_floats(self):
        draft = BookingDraft.model_validate({"doctorId": 1.0, "scheduleId": "7", "scheduleTime": "14:30:00"})

        assert draft.doctor_id == 1
        assert draft.schedule_id == 7
        assert draft.schedule_time == time(14, 30)

    def test_to_context_parameters(self):
        draft = BookingDraft(
            doctor_id=1,
            schedule_id=7,
            schedule_time=time(14, 30),
            schedule_date=date(2025, 3, 10),
            patient_name="  Maria   Silva ",
        )

        assert draft.to_context_parameters() == {
            "doctorId": 1,
            "scheduleId": 7,
            "scheduleTime": "14:30:00",
            "scheduleDate": "2025-03-10",
            "patientName": "Maria Silva",
        }

    def test_parse_context_parameters_drops_garbage(self):
        fields = parse_context_parameters({
            "doctorId": "abc",
            "scheduleId": 7.0,
            "scheduleTime": "2025-03-10T14:30:00-03:00",
            "patientName": "",
            "unrelated": "x",
        })

        assert fields == {"schedule_id": 7, "schedule_time": time(14, 30)}

    @pytest.mark.parametrize("value,expected", [(3, 3), (3.0, 3), ("3", 3), (0, None), (2.5, None), (True, None), ("x", None)])
    def test_coerce_id(self, value, expected):
        assert coerce_id(value) == expected

    def test_coerce_time_from_datetime_string(self):
        assert coerce_time("2025-03-10T09:00:00+00:00") == time(9, 0)


class TestSessionStore:
    """Test merge semantics, LRU eviction and thread safety."""

    def test_get_missing_session_is_empty(self):
        store = SessionStore()
        assert store.get("s1").is_empty()
        assert "s1" not in store

    def test_set_merges_fields(self):
        store = SessionStore()
        store.set("s1", doctor_id=1)
        draft = store.set("s1", schedule_id=5, schedule_time=time(9, 0))

        assert draft.doctor_id == 1
        assert draft.schedule_id == 5
        assert store.get("s1") == draft

    def test_none_never_erases(self):
        store = SessionStore()
        store.set("s1", doctor_id=1)
        store.set("s1", doctor_id=None)

        assert store.get("s1").doctor_id == 1

    def test_out_of_order_set_rejected(self):
        store = SessionStore()

        with pytest.raises(ValidationError):
            store.set("s1", patient_name="Maria Silva")

        assert "s1" not in store

    def test_returned_draft_is_a_copy(self):
        store = SessionStore()
        store.set("s1", doctor_id=1)

        draft = store.get("s1")
        draft.doctor_id = 2

        assert store.get("s1").doctor_id == 1

    def test_clear(self):
        store = SessionStore()
        store.set("s1", doctor_id=1)
        store.clear("s1")
        store.clear("never-set")

        assert "s1" not in store
        assert len(store) == 0

    @pytest.mark.parametrize("session_id", ["", None])
    def test_empty_session_id_is_noop(self, session_id):
        store = SessionStore()

        assert store.set(session_id, doctor_id=1).is_empty()
        assert store.get(session_id).is_empty()
        store.clear(session_id)
        assert len(store) == 0

    def test_lru_eviction(self):
        store = SessionStore(capacity=2)
        store.set("s1", doctor_id=1)
        store.set("s2", doctor_id=2)
        store.get("s1")  # s2 becomes least recently used
        store.set("s3", doctor_id=3)

        assert "s1" in store
        assert "s2" not in store
        assert "s3" in store
        assert len(store) == 2

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            SessionStore(capacity=0)

    def test_concurrent_sets(self):
        store = SessionStore(capacity=1000)

        def worker(n):
            for i in range(50):
                store.set(f"s{n}-{i}", doctor_id=i + 1)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(store) == 400
        assert store.get("s7-49").doctor_id == 50
