"""
Tests for the in-memory clinic store that backs the tools.
"""

import pytest

from voice_receptionist.models import ExternalEvent, Patient, PatientStatus


class TestRoster:

    def test_seed_roster(self, store):
        patients = store.get_patients()

        assert [p.id for p in patients] == ["101-001", "101-002", "101-003"]
        assert patients[0].status == PatientStatus.ACTIVE
        assert store.get_study_details().protocol_number == "NEXUS-X01"

    def test_add_patient_raises_alert(self, store):
        store.add_patient(Patient(id="106-1", first_name="Ana", last_name="Lopez", date_of_birth="1990-01-01"))

        assert store.get_patient("106-1").study_id == "STUDY-001"
        assert store.alerts[0].category == "New Patient"
        assert store.alerts[0].patient_id == "106-1"

    def test_roster_scoped_to_current_study(self, store):
        store.current_study_id = "STUDY-002"
        assert store.get_patients() == []

    def test_deferred_updates(self, deferred_store):
        deferred_store.add_patient(Patient(id="106-2", first_name="Ana", last_name="Lopez", date_of_birth="1990-01-01"))

        assert deferred_store.get_patient("106-2") is None
        assert deferred_store.flush() == 1
        assert deferred_store.get_patient("106-2") is not None
        assert deferred_store.flush() == 0

    def test_deferred_alerts_wait_for_flush(self, deferred_store):
        deferred_store.add_alert({"category": "Inquiry", "priority": "Low", "message": "Call back after 3pm"})
        deferred_store.report_adverse_event(
            "101-001", {"description": "Rash", "severity": "Severe", "dateReported": "2026-10-17"},
        )

        assert deferred_store.alerts == []
        assert deferred_store.flush() == 2
        assert [a.category for a in deferred_store.alerts] == ["Adverse Event", "Inquiry"]
        assert deferred_store.alerts[0].priority == "High"


class TestScheduling:

    def test_visits_stay_sorted(self, store):
        store.schedule_visit("101-002", {"name": "Early", "date": "2023-01-01"})

        names = [v.name for v in store.get_patient("101-002").visits]
        assert names == ["Early", "Screening"]

    def test_reschedule_resets_status(self, store):
        store.reschedule_visit("101-003", "V1", "2026-11-01")

        visit = next(v for v in store.get_patient("101-003").visits if v.id == "V1")
        assert visit.date == "2026-11-01"
        assert visit.status == "Scheduled"
        assert store.alerts[0].priority == "Medium"

    def test_unknown_patient_dropped(self, store):
        store.schedule_visit("999", {"name": "X", "date": "2026-11-01"})
        assert store.alerts == []


class TestAdverseEvents:

    @pytest.mark.parametrize("severity,priority", [
        ("Mild", "Medium"),
        ("Moderate", "Medium"),
        ("Severe", "High"),
        ("Life-Threatening", "High"),
    ])
    def test_alert_priority(self, store, severity, priority):
        store.report_adverse_event("101-001", {"description": "x", "severity": severity, "dateReported": "2026-10-17"})
        assert store.alerts[0].priority == priority

    def test_newest_first(self, store):
        for description in ("first", "second"):
            store.report_adverse_event(
                "101-001", {"description": description, "severity": "Mild", "dateReported": "2026-10-17"},
            )

        assert [ae.description for ae in store.get_patient("101-001").adverse_events] == ["second", "first"]


class TestNavigation:

    def test_unknown_view_rejected(self, store):
        with pytest.raises(ValueError):
            store.change_view("billing")
        assert store.current_view == "dashboard"

    def test_unknown_modal_rejected(self, store):
        with pytest.raises(ValueError):
            store.open_modal("delete_patient")


class TestCalendarConflicts:

    def test_same_day_only(self, store):
        events = [
            ExternalEvent(id="g1", title="Dentist", date="2026-10-20T09:00:00"),
            ExternalEvent(id="g2", title="Flight", date="2026-10-21", is_all_day=True),
        ]

        conflicts = store.find_calendar_conflicts("2026-10-20", events)

        assert [e.id for e in conflicts] == ["g1"]
