"""
Domain data models shared by the tools and the collaborator store.

Field names are snake_case in Python; `to_payload()` helpers produce the
camelCase shapes the live model sees in tool results.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class PatientStatus(str, Enum):
    SCREENING = "Screening"
    ENROLLED = "Enrolled"
    ACTIVE = "Active"
    COMPLETED = "Completed"
    WITHDRAWN = "Withdrawn"
    SCREEN_FAILED = "Screen Failed"


class Gender(str, Enum):
    MALE = "Male"
    FEMALE = "Female"
    OTHER = "Other"


VISIT_STATUSES = ("Scheduled", "Completed", "Missed", "Overdue")
AE_SEVERITIES = ("Mild", "Moderate", "Severe", "Life-Threatening")
AE_STATUSES = ("Resolved", "Ongoing")
ALERT_CATEGORIES = ("Appointment", "Adverse Event", "New Patient", "Inquiry", "General")
ALERT_PRIORITIES = ("High", "Medium", "Low")

# Statuses that count toward recruitment progress
ENROLLED_STATUSES = (PatientStatus.ACTIVE, PatientStatus.COMPLETED, PatientStatus.ENROLLED)


@dataclass
class Visit:
    id: str
    name: str
    date: str  # ISO date (YYYY-MM-DD)
    status: str = "Scheduled"
    notes: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        payload = {"id": self.id, "name": self.name, "date": self.date, "status": self.status}
        if self.notes:
            payload["notes"] = self.notes
        return payload


@dataclass
class AdverseEvent:
    id: str
    description: str
    severity: str
    date_reported: str
    status: str = "Ongoing"


@dataclass
class Patient:
    id: str
    first_name: str
    last_name: str
    date_of_birth: str
    gender: Gender = Gender.OTHER
    status: PatientStatus = PatientStatus.SCREENING
    site_id: str = "SITE-001"
    study_id: str = ""
    enrollment_date: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    visits: List[Visit] = field(default_factory=list)
    adverse_events: List[AdverseEvent] = field(default_factory=list)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def summary(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.full_name,
            "status": self.status.value,
            "dob": self.date_of_birth,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Patient":
        return cls(
            id=str(data["id"]),
            first_name=data["first_name"],
            last_name=data["last_name"],
            date_of_birth=str(data.get("date_of_birth", "")),
            gender=Gender(data.get("gender") or Gender.OTHER.value),
            status=PatientStatus(data.get("status") or PatientStatus.SCREENING.value),
            site_id=data.get("site_id", "SITE-001"),
            study_id=data.get("study_id", ""),
            enrollment_date=data.get("enrollment_date"),
            contact_email=data.get("contact_email"),
            contact_phone=data.get("contact_phone"),
            visits=[Visit(**v) for v in data.get("visits") or []],
            adverse_events=[AdverseEvent(**ae) for ae in data.get("adverse_events") or []],
        )


@dataclass
class StudyDetails:
    id: str
    protocol_number: str
    title: str
    phase: str
    sponsor: str
    description: str
    inclusion_criteria: str = ""
    exclusion_criteria: str = ""
    recruitment_target: int = 0
    status: str = "Pending"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StudyDetails":
        return cls(
            id=data["id"],
            protocol_number=data["protocol_number"],
            title=data["title"],
            phase=str(data.get("phase", "")),
            sponsor=data.get("sponsor", ""),
            description=data.get("description", ""),
            inclusion_criteria=data.get("inclusion_criteria", ""),
            exclusion_criteria=data.get("exclusion_criteria", ""),
            recruitment_target=int(data.get("recruitment_target") or 0),
            status=data.get("status", "Pending"),
        )


@dataclass
class TaskAlert:
    id: str
    category: str
    priority: str
    message: str
    timestamp: str
    read: bool = False
    patient_id: Optional[str] = None
    study_id: Optional[str] = None


@dataclass
class ExternalEvent:
    """An event imported from an external calendar."""
    id: str
    title: str
    date: str
    time: str = ""
    source: str = "Google"
    is_all_day: bool = False
