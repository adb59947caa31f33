"""
Clinical workflow tools: visits, adverse events and dashboard alerts.

Visit and adverse-event tools need a resolved patient: the explicit
patientId argument, else the session's active patient. Without one they
return a failure payload so the model asks the caller to identify.
"""

from typing import Any, Dict, Optional

import structlog

from voice_receptionist.collaborators import maybe_await
from voice_receptionist.models import AE_SEVERITIES, ALERT_CATEGORIES, ALERT_PRIORITIES, Patient
from voice_receptionist.tools.base import (
    Tool,
    ToolCategory,
    ToolDefinition,
    ToolParameter,
    failure,
    parse_iso_date,
    success,
)
from voice_receptionist.tools.context import ConversationMode, ToolExecutionContext

logger = structlog.get_logger(__name__)

_PATIENT_ID_PARAM = ToolParameter(
    name="patientId",
    type="string",
    description="The patient ID (optional if patient is already verified)",
)

IDENTITY_MISSING = "Patient identity missing. Verify patient first."


def visit_to_reschedule(patient: Patient, today: str) -> Optional[str]:
    """Next upcoming scheduled visit, else the earliest scheduled one, else the first visit."""
    scheduled = sorted((v for v in patient.visits if v.status == "Scheduled"), key=lambda v: v.date)
    upcoming = [v for v in scheduled if v.date >= today]
    if upcoming:
        return upcoming[0].id
    if scheduled:
        return scheduled[0].id
    return patient.visits[0].id if patient.visits else None


class ScheduleVisitTool(Tool):

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="schedule_visit",
            description=(
                "Schedule a new visit. If the patient is already verified in this session, "
                "you do NOT need to ask for their name/ID again."
            ),
            category=ToolCategory.CLINICAL,
            parameters=[
                _PATIENT_ID_PARAM,
                ToolParameter(name="date", type="string", required=True, description="YYYY-MM-DD format"),
                ToolParameter(name="visitType", type="string", required=True),
            ],
        )

    async def execute(self, parameters: Dict[str, Any], context: ToolExecutionContext) -> Dict[str, Any]:
        patient_id = context.resolve_patient_id(parameters.get("patientId"))
        if not patient_id:
            return failure(IDENTITY_MISSING)
        if context.find_patient(patient_id) is None:
            return failure(f"Patient {patient_id} not found.")

        visit_date = parse_iso_date(parameters["date"])
        if visit_date is None:
            return failure(f"Invalid date '{parameters['date']}'. Use YYYY-MM-DD.")

        notes = "Scheduled via Phone" if context.mode == ConversationMode.PATIENT else "Scheduled via Staff Voice"
        await maybe_await(context.scheduling.schedule_visit(patient_id, {
            "name": str(parameters["visitType"]),
            "date": visit_date,
            "status": "Scheduled",
            "notes": notes,
        }))
        return success(f"Visit scheduled for {visit_date}.", patientId=patient_id)


class RescheduleVisitTool(Tool):

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="reschedule_visit",
            description="Reschedule an existing visit. If the patient is already verified, ID is not required.",
            category=ToolCategory.CLINICAL,
            parameters=[
                _PATIENT_ID_PARAM,
                ToolParameter(
                    name="visitId",
                    type="string",
                    description="The ID of the visit to reschedule (optional, AI can infer if only one upcoming visit)",
                ),
                ToolParameter(name="newDate", type="string", required=True, description="YYYY-MM-DD format"),
            ],
        )

    async def execute(self, parameters: Dict[str, Any], context: ToolExecutionContext) -> Dict[str, Any]:
        patient_id = context.resolve_patient_id(parameters.get("patientId"))
        if not patient_id:
            return failure(IDENTITY_MISSING)

        patient = context.find_patient(patient_id)
        if patient is None:
            return failure(f"Patient {patient_id} not found.")

        new_date = parse_iso_date(parameters["newDate"])
        if new_date is None:
            return failure(f"Invalid date '{parameters['newDate']}'. Use YYYY-MM-DD.")

        visit_id = parameters.get("visitId") or visit_to_reschedule(patient, context.today().isoformat()) or "V1"

        await maybe_await(context.scheduling.reschedule_visit(patient_id, visit_id, new_date))
        return success(f"Visit rescheduled to {new_date}.", patientId=patient_id, visitId=visit_id)


class LogCallOutcomeTool(Tool):

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="log_call_outcome",
            description="Log the outcome of a call as a dashboard alert/task.",
            category=ToolCategory.CLINICAL,
            parameters=[
                ToolParameter(name="category", type="string", required=True, enum=list(ALERT_CATEGORIES)),
                ToolParameter(name="priority", type="string", required=True, enum=list(ALERT_PRIORITIES)),
                ToolParameter(name="message", type="string", required=True,
                              description="A concise summary of the alert."),
                ToolParameter(name="patientId", type="string", description="Optional patient ID if known."),
            ],
        )

    async def execute(self, parameters: Dict[str, Any], context: ToolExecutionContext) -> Dict[str, Any]:
        alert = {
            "category": parameters["category"],
            "priority": parameters["priority"],
            "message": str(parameters["message"]),
            "patientId": context.resolve_patient_id(parameters.get("patientId")),
        }
        await maybe_await(context.alerts.add_alert(alert))
        return success("Alert logged to dashboard.")


class ReportAdverseEventTool(Tool):

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="report_adverse_event",
            description=(
                "Report a clinical Adverse Event. Use this when a patient reports side effects, pain, "
                "hospitalization, or new medical conditions."
            ),
            category=ToolCategory.CLINICAL,
            parameters=[
                ToolParameter(name="patientId", type="string", description="Optional patient ID if known."),
                ToolParameter(name="description", type="string", required=True,
                              description="Description of the event"),
                ToolParameter(name="severity", type="string", required=True, enum=list(AE_SEVERITIES)),
            ],
        )

    async def execute(self, parameters: Dict[str, Any], context: ToolExecutionContext) -> Dict[str, Any]:
        patient_id = context.resolve_patient_id(parameters.get("patientId"))
        if not patient_id:
            return failure(IDENTITY_MISSING)

        if context.find_patient(patient_id) is None:
            return failure(f"Patient {patient_id} not found.")

        await maybe_await(context.adverse_events.report_adverse_event(patient_id, {
            "description": str(parameters["description"]),
            "severity": parameters["severity"],
            "dateReported": context.today().isoformat(),
            "status": "Ongoing",
        }))
        logger.info(
            "Adverse event reported",
            session_id=context.session_id,
            patient_id=patient_id,
            severity=parameters["severity"],
        )
        return success("Adverse Event reported and logged.", patientId=patient_id)
