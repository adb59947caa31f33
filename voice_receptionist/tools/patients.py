"""
Patient identity tools.

verify_patient and register_new_patient establish the active patient for
the rest of the session; find_patient_internal is the staff lookup.
All identity changes go through the context so calls later in the same
batch see them immediately.
"""

import random
from typing import Any, Dict, List, Optional

import structlog

from voice_receptionist.collaborators import maybe_await
from voice_receptionist.models import Gender, Patient, PatientStatus
from voice_receptionist.tools.base import (
    Tool,
    ToolCategory,
    ToolDefinition,
    ToolParameter,
    failure,
    parse_iso_date,
    success,
)
from voice_receptionist.tools.context import ToolExecutionContext

logger = structlog.get_logger(__name__)

DEFAULT_SITE_ID = "SITE-001"
DEFAULT_ID_PREFIX = "106-"


def match_by_name(patients: List[Patient], query: str, include_email: bool = False) -> List[Patient]:
    """Case-insensitive substring match on full name (and optionally email)."""
    needle = query.strip().lower()
    if not needle:
        return []
    matches = []
    for patient in patients:
        if needle in patient.full_name.lower():
            matches.append(patient)
        elif include_email and patient.contact_email and needle in patient.contact_email.lower():
            matches.append(patient)
    return matches


def dob_matches(patient: Patient, dob: str) -> bool:
    """Full date, year-month or year-only prefix match."""
    given = dob.strip()
    return bool(given) and patient.date_of_birth.startswith(given)


class VerifyPatientTool(Tool):

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="verify_patient",
            description=(
                "Verify a patient identity by name and date of birth. Upon success, the patient is "
                "considered \"verified\" for the remainder of the session, and you can perform actions "
                "for them without asking for ID again."
            ),
            category=ToolCategory.PATIENT,
            parameters=[
                ToolParameter(name="name", type="string", required=True,
                              description="The full name of the patient."),
                ToolParameter(name="dob", type="string",
                              description="The date of birth (YYYY-MM-DD) or approximate year."),
            ],
        )

    async def execute(self, parameters: Dict[str, Any], context: ToolExecutionContext) -> Dict[str, Any]:
        name = str(parameters["name"])
        dob: Optional[str] = parameters.get("dob")

        candidates = match_by_name(context.patients(), name, include_email=True)
        if dob and candidates:
            candidates = [p for p in candidates if dob_matches(p, str(dob))]

        if not candidates:
            return failure("Patient not found with those details. Please ask for clarification or spelling.")

        if len(candidates) > 1:
            logger.info("Verification ambiguous", session_id=context.session_id, count=len(candidates))
            return failure(
                "Multiple patients match that name. Ask for the full name and date of birth to narrow it down.",
                ambiguous=True,
                count=len(candidates),
                candidates=[{"id": p.id, "name": p.full_name} for p in candidates],
            )

        found = candidates[0]
        context.set_active_patient(found.id)
        return success(
            f"Identity verified. Patient: {found.full_name} (ID: {found.id}). You may now proceed with "
            f"scheduling, checking visits, or reporting events for this patient.",
            patientId=found.id,
        )


class RegisterNewPatientTool(Tool):

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="register_new_patient",
            description=(
                "Register a new patient in the system. Use this when a caller identifies as a new patient. "
                "After registration, the patient is automatically verified."
            ),
            category=ToolCategory.PATIENT,
            parameters=[
                ToolParameter(name="firstName", type="string", required=True),
                ToolParameter(name="lastName", type="string", required=True),
                ToolParameter(name="dateOfBirth", type="string", required=True, description="YYYY-MM-DD"),
                ToolParameter(name="gender", type="string", enum=[g.value for g in Gender],
                              description="Inferred from voice or 'Other' if unknown."),
            ],
        )

    def _new_patient_id(self, context: ToolExecutionContext) -> str:
        prefix = context.get_config_value("tools.register_new_patient.id_prefix", DEFAULT_ID_PREFIX)
        taken = {p.id for p in context.patients()}
        while True:
            candidate = f"{prefix}{random.randint(0, 9999)}"
            if candidate not in taken:
                return candidate

    async def execute(self, parameters: Dict[str, Any], context: ToolExecutionContext) -> Dict[str, Any]:
        first_name = str(parameters["firstName"]).strip()
        last_name = str(parameters["lastName"]).strip()
        dob = str(parameters["dateOfBirth"]).strip()

        study = await maybe_await(context.study.get_study_details())
        patient = Patient(
            id=self._new_patient_id(context),
            first_name=first_name,
            last_name=last_name,
            date_of_birth=parse_iso_date(dob) or dob,
            gender=Gender(parameters.get("gender") or Gender.OTHER.value),
            status=PatientStatus.SCREENING,
            site_id=context.get_config_value("tools.register_new_patient.site_id", DEFAULT_SITE_ID),
            study_id=study.id,
            enrollment_date=context.today().isoformat(),
        )
        await maybe_await(context.roster.add_patient(patient))

        # Visible to the rest of this batch before the roster catches up
        context.remember_patient(patient)
        context.set_active_patient(patient.id)

        logger.info("Patient registered", session_id=context.session_id, patient_id=patient.id)
        return success(
            f"Patient {first_name} {last_name} registered with ID {patient.id}. "
            f"You can now schedule their Screening visit.",
            patientId=patient.id,
        )


class FindPatientInternalTool(Tool):

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="find_patient_internal",
            description=(
                "Look up a patient by name to retrieve status and details (Staff Internal Use Only). "
                "Sets the context to this patient for follow-up questions."
            ),
            category=ToolCategory.PATIENT,
            parameters=[
                ToolParameter(name="name", type="string", required=True),
            ],
        )

    async def execute(self, parameters: Dict[str, Any], context: ToolExecutionContext) -> Dict[str, Any]:
        matches = match_by_name(context.patients(), str(parameters["name"]))
        count = len(matches)

        if count == 1:
            found = matches[0]
            context.set_active_patient(found.id)
            await maybe_await(context.navigation.select_patient(found.id))
            await maybe_await(context.navigation.change_view("patients"))
            message = f"One patient found: {found.full_name}. I have pulled up their record."
        elif count == 0:
            message = "No patients found with that name. Please check the spelling."
        else:
            message = "Multiple patients found. Please clarify."

        return {
            "success": count == 1,
            "count": count,
            "patients": [p.summary() for p in matches],
            "message": message,
        }


class GetMyVisitsTool(Tool):

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="get_my_visits",
            description=(
                "Get a list of past and upcoming visits for the currently verified patient. Use this if "
                "the user asks \"When is my next appointment?\" or \"What visits have I done?\"."
            ),
            category=ToolCategory.PATIENT,
            parameters=[
                ToolParameter(name="patientId", type="string",
                              description="The patient ID (optional if patient is already verified)"),
            ],
        )

    async def execute(self, parameters: Dict[str, Any], context: ToolExecutionContext) -> Dict[str, Any]:
        patient_id = context.resolve_patient_id(parameters.get("patientId"))
        if not patient_id:
            return failure("No patient verified. Please verify identity first.")

        patient = context.find_patient(patient_id)
        if patient is None:
            return failure("Patient not found")

        return success(
            f"Found {len(patient.visits)} visits for {patient.full_name}.",
            patientName=patient.full_name,
            visits=[v.to_payload() for v in patient.visits],
        )
