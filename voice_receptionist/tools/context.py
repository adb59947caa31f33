"""
Tool execution context - the per-session state every tool call reads.

Holds the conversation mode, the verified/active patient and live
references to the collaborators. Roster and study reads always go back
to the collaborator; nothing is snapshotted at session start.

Collaborator mutations may only become visible on a later read, so the
context also keeps an immediately-consistent shadow: the active patient
id is a plain attribute updated synchronously, and patients registered in
this session are merged into roster reads until the roster reports them.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import structlog

from voice_receptionist.models import Patient

logger = structlog.get_logger(__name__)


class ConversationMode(str, Enum):
    STAFF = "staff"
    PATIENT = "patient"


@dataclass
class ToolExecutionContext:
    """
    Context provided to tools during execution.

    One instance per session; the dispatcher passes the same instance to
    every call so identity side effects are visible to later calls in the
    same batch.
    """

    session_id: str
    mode: ConversationMode = ConversationMode.STAFF

    # Collaborators (live references)
    roster: Any = None           # PatientRoster
    study: Any = None            # StudyDetailsProvider
    scheduling: Any = None       # SchedulingService
    alerts: Any = None           # AlertService
    adverse_events: Any = None   # AdverseEventService
    navigation: Any = None       # NavigationService

    config: Optional[Dict[str, Any]] = None
    today: Callable[[], date] = date.today

    active_patient_id: Optional[str] = None
    _pending_patients: Dict[str, Patient] = field(default_factory=dict, init=False, repr=False)

    @classmethod
    def from_store(cls, session_id: str, store: Any, **kwargs) -> "ToolExecutionContext":
        """Context whose collaborators are all served by one store object."""
        return cls(
            session_id=session_id,
            roster=store,
            study=store,
            scheduling=store,
            alerts=store,
            adverse_events=store,
            navigation=store,
            **kwargs,
        )

    # -- identity ----------------------------------------------------------

    def set_active_patient(self, patient_id: Optional[str]) -> None:
        if patient_id != self.active_patient_id:
            logger.info("Active patient changed", session_id=self.session_id, patient_id=patient_id)
        self.active_patient_id = patient_id

    def resolve_patient_id(self, explicit: Optional[str] = None) -> Optional[str]:
        """Explicit id if supplied, else the active patient, else None."""
        if explicit is not None and str(explicit).strip():
            return str(explicit).strip()
        return self.active_patient_id

    def remember_patient(self, patient: Patient) -> None:
        """Shadow a patient whose add request may not be visible yet."""
        self._pending_patients[patient.id] = patient

    def reset(self) -> None:
        """Forget identity state (session start and end)."""
        self.active_patient_id = None
        self._pending_patients.clear()

    # -- roster reads ------------------------------------------------------

    def patients(self) -> List[Patient]:
        """Latest roster snapshot plus patients registered but not yet visible."""
        current = list(self.roster.get_patients()) if self.roster is not None else []
        known = {p.id for p in current}
        for patient_id in list(self._pending_patients):
            if patient_id in known:
                del self._pending_patients[patient_id]
        return current + list(self._pending_patients.values())

    def find_patient(self, patient_id: Optional[str]) -> Optional[Patient]:
        if not patient_id:
            return None
        return next((p for p in self.patients() if p.id == patient_id), None)

    # -- config ------------------------------------------------------------

    def get_config_value(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value.

        Args:
            key: Config key (supports dot notation, e.g., "tools.register_new_patient.site_id")
            default: Default value if key not found
        """
        if not self.config:
            return default

        value: Any = self.config
        for k in key.split('.'):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value
