"""
In-memory clinic store implementing every collaborator protocol.

Used by the standalone runner and by tests. Side effects mirror the site
application: new patients, visits and adverse events raise dashboard
alerts, visits stay sorted by date, adverse events are newest-first.

With ``defer_updates=True`` mutations are queued and only become visible
after ``flush()``, the way a UI state store applies updates on its next
render. This is how the engine's same-batch consistency is exercised.
"""

import itertools
import time
from datetime import date, datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

import structlog
import yaml

from voice_receptionist.models import (
    AdverseEvent,
    ExternalEvent,
    Patient,
    StudyDetails,
    TaskAlert,
    Visit,
)

logger = structlog.get_logger(__name__)

VIEWS = ("dashboard", "patients", "visits", "reports", "study", "settings")
MODAL_TYPES = ("add_patient", "schedule_visit")


class InMemoryClinicStore:
    """Patients, studies, alerts and UI navigation state for one site."""

    def __init__(
        self,
        studies: Iterable[StudyDetails],
        patients: Iterable[Patient] = (),
        current_study_id: Optional[str] = None,
        defer_updates: bool = False,
    ):
        self.studies: Dict[str, StudyDetails] = {s.id: s for s in studies}
        if not self.studies:
            raise ValueError("At least one study is required")
        self.current_study_id = current_study_id or next(iter(self.studies))
        self._patients: List[Patient] = list(patients)
        self.alerts: List[TaskAlert] = []
        self.defer_updates = defer_updates
        self._pending: List[Callable[[], None]] = []
        self._ids = itertools.count(1)

        # UI navigation state
        self.current_view = "dashboard"
        self.selected_patient_id: Optional[str] = None
        self.open_modal_type: Optional[str] = None

    @classmethod
    def from_yaml(cls, path: str, **kwargs) -> "InMemoryClinicStore":
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        studies = [StudyDetails.from_dict(s) for s in data.get("studies") or []]
        patients = [Patient.from_dict(p) for p in data.get("patients") or []]
        return cls(studies, patients, current_study_id=data.get("current_study_id"), **kwargs)

    # -- internals ---------------------------------------------------------

    def _apply(self, mutation: Callable[[], None]) -> None:
        if self.defer_updates:
            self._pending.append(mutation)
        else:
            mutation()

    def flush(self) -> int:
        """Apply queued mutations. Returns how many were applied."""
        pending, self._pending = self._pending, []
        for mutation in pending:
            mutation()
        return len(pending)

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}-{int(time.time() * 1000)}-{next(self._ids)}"

    def _find(self, patient_id: str) -> Optional[Patient]:
        return next((p for p in self._patients if p.id == patient_id), None)

    # -- PatientRoster -----------------------------------------------------

    def get_patients(self) -> List[Patient]:
        return [p for p in self._patients if p.study_id == self.current_study_id]

    def get_patient(self, patient_id: str) -> Optional[Patient]:
        return self._find(patient_id)

    def add_patient(self, patient: Patient) -> None:
        def mutation():
            patient.study_id = self.current_study_id
            self._patients.append(patient)
            logger.info("Patient added", patient_id=patient.id, study_id=self.current_study_id)
            self._insert_alert({
                "category": "New Patient",
                "priority": "Medium",
                "message": f"New patient registered: {patient.full_name}",
                "patientId": patient.id,
                "studyId": self.current_study_id,
            })
        self._apply(mutation)

    def update_patient(self, patient: Patient) -> None:
        def mutation():
            self._patients = [patient if p.id == patient.id else p for p in self._patients]
        self._apply(mutation)

    # -- StudyDetailsProvider ----------------------------------------------

    def get_study_details(self) -> StudyDetails:
        return self.studies[self.current_study_id]

    # -- SchedulingService -------------------------------------------------

    def schedule_visit(self, patient_id: str, visit: Dict[str, Any]) -> None:
        def mutation():
            patient = self._find(patient_id)
            if patient is None:
                logger.warning("Visit for unknown patient dropped", patient_id=patient_id)
                return
            new_visit = Visit(
                id=self._next_id("V"),
                name=visit["name"],
                date=visit["date"],
                status=visit.get("status", "Scheduled"),
                notes=visit.get("notes"),
            )
            patient.visits = sorted(patient.visits + [new_visit], key=lambda v: v.date)
            self._insert_alert({
                "category": "Appointment",
                "priority": "Low",
                "message": f"Visit scheduled for {patient.full_name} on {new_visit.date}",
                "patientId": patient_id,
                "studyId": patient.study_id,
            })
        self._apply(mutation)

    def reschedule_visit(self, patient_id: str, visit_id: str, new_date: str) -> None:
        def mutation():
            patient = self._find(patient_id)
            if patient is None:
                logger.warning("Reschedule for unknown patient dropped", patient_id=patient_id)
                return
            for v in patient.visits:
                if v.id == visit_id:
                    v.date = new_date
                    v.status = "Scheduled"
            patient.visits.sort(key=lambda v: v.date)
            self._insert_alert({
                "category": "Appointment",
                "priority": "Medium",
                "message": f"Visit rescheduled for {patient.full_name} to {new_date}",
                "patientId": patient_id,
                "studyId": patient.study_id,
            })
        self._apply(mutation)

    # -- AdverseEventService -----------------------------------------------

    def report_adverse_event(self, patient_id: str, event: Dict[str, Any]) -> None:
        def mutation():
            patient = self._find(patient_id)
            if patient is None:
                logger.warning("Adverse event for unknown patient dropped", patient_id=patient_id)
                return
            ae = AdverseEvent(
                id=self._next_id("AE"),
                description=event["description"],
                severity=event["severity"],
                date_reported=event["dateReported"],
                status=event.get("status", "Ongoing"),
            )
            patient.adverse_events.insert(0, ae)
            high = ae.severity in ("Severe", "Life-Threatening")
            self._insert_alert({
                "category": "Adverse Event",
                "priority": "High" if high else "Medium",
                "message": f"New Adverse Event: {ae.description} ({ae.severity})",
                "patientId": patient_id,
                "studyId": patient.study_id,
            })
        self._apply(mutation)

    # -- AlertService ------------------------------------------------------

    def add_alert(self, alert: Dict[str, Any]) -> None:
        self._apply(lambda: self._insert_alert(alert))

    def _insert_alert(self, alert: Dict[str, Any]) -> TaskAlert:
        # Called from inside mutations, which are already queued
        new_alert = TaskAlert(
            id=self._next_id("ALT"),
            category=alert["category"],
            priority=alert["priority"],
            message=alert["message"],
            timestamp=datetime.now().strftime("%H:%M"),
            patient_id=alert.get("patientId"),
            study_id=alert.get("studyId") or self.current_study_id,
        )
        self.alerts.insert(0, new_alert)
        return new_alert

    # -- NavigationService -------------------------------------------------

    def change_view(self, view: str) -> None:
        if view not in VIEWS:
            raise ValueError(f"Unknown view: {view}")
        self.current_view = view

    def select_patient(self, patient_id: Optional[str]) -> None:
        self.selected_patient_id = patient_id

    def open_modal(self, modal_type: str) -> None:
        if modal_type not in MODAL_TYPES:
            raise ValueError(f"Unknown modal type: {modal_type}")
        self.open_modal_type = modal_type

    # -- Calendar ----------------------------------------------------------

    def find_calendar_conflicts(self, visit_date: str, external_events: Iterable[ExternalEvent]) -> List[ExternalEvent]:
        """External events on the same calendar day as ``visit_date``.

        Day granularity only: time of day is not compared.
        """
        day = date.fromisoformat(visit_date[:10])
        return [e for e in external_events if date.fromisoformat(e.date[:10]) == day]
