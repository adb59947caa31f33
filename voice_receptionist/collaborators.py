"""
Interfaces of the application collaborators the voice engine drives.

The engine never owns patient, study or alert data. It reads the latest
snapshot through these protocols and requests mutations through them.
Mutations are assumed to be visible to *later* reads only; the session
context keeps its own immediately-consistent view for calls in the same
batch.

Any method may be a plain function or a coroutine function; callers go
through `maybe_await`.
"""

import inspect
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from voice_receptionist.models import Patient, StudyDetails


async def maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


@runtime_checkable
class PatientRoster(Protocol):
    def get_patients(self) -> List[Patient]:
        """Latest snapshot of patients in the current study context."""
        ...

    def add_patient(self, patient: Patient) -> Any:
        ...

    def update_patient(self, patient: Patient) -> Any:
        ...


@runtime_checkable
class StudyDetailsProvider(Protocol):
    def get_study_details(self) -> StudyDetails:
        ...


@runtime_checkable
class SchedulingService(Protocol):
    def schedule_visit(self, patient_id: str, visit: Dict[str, Any]) -> Any:
        """visit: {name, date, status, notes}"""
        ...

    def reschedule_visit(self, patient_id: str, visit_id: str, new_date: str) -> Any:
        ...


@runtime_checkable
class AlertService(Protocol):
    def add_alert(self, alert: Dict[str, Any]) -> Any:
        """alert: {category, priority, message, patientId?}"""
        ...


@runtime_checkable
class AdverseEventService(Protocol):
    def report_adverse_event(self, patient_id: str, event: Dict[str, Any]) -> Any:
        """event: {description, severity, dateReported, status}"""
        ...


@runtime_checkable
class NavigationService(Protocol):
    def change_view(self, view: str) -> Any:
        ...

    def select_patient(self, patient_id: Optional[str]) -> Any:
        ...

    def open_modal(self, modal_type: str) -> Any:
        ...
