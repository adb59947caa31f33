"""
UI navigation tools: switch views, open action forms, show a patient.
"""

from typing import Any, Dict

import structlog

from voice_receptionist.collaborators import maybe_await
from voice_receptionist.store import MODAL_TYPES, VIEWS
from voice_receptionist.tools.base import (
    Tool,
    ToolCategory,
    ToolDefinition,
    ToolParameter,
    failure,
    success,
)
from voice_receptionist.tools.context import ToolExecutionContext

logger = structlog.get_logger(__name__)


class NavigateAppTool(Tool):

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="navigate_app",
            description=(
                "Navigate the application to a specific main view "
                "(dashboard, patients, visits, reports, study, settings)."
            ),
            category=ToolCategory.NAVIGATION,
            parameters=[
                ToolParameter(name="view", type="string", required=True, enum=list(VIEWS)),
            ],
        )

    async def execute(self, parameters: Dict[str, Any], context: ToolExecutionContext) -> Dict[str, Any]:
        view = parameters["view"]
        await maybe_await(context.navigation.change_view(view))
        return success(f"Navigated to {view} view.")


# modal type -> (view it lives on, confirmation)
_MODAL_TARGETS = {
    "add_patient": ("patients", "Navigated to Patients view and opened 'Add Patient' form."),
    "schedule_visit": ("visits", "Navigated to Calendar view and opened 'Schedule Visit' modal."),
}


class OpenActionModalTool(Tool):

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="open_action_modal",
            description=(
                "Open a specific action modal in the UI to help the user perform a task visually. "
                "Use this when the user wants to manually add a patient or manually schedule a visit."
            ),
            category=ToolCategory.NAVIGATION,
            parameters=[
                ToolParameter(name="modalType", type="string", required=True, enum=list(MODAL_TYPES)),
            ],
        )

    async def execute(self, parameters: Dict[str, Any], context: ToolExecutionContext) -> Dict[str, Any]:
        modal_type = parameters["modalType"]
        if modal_type not in _MODAL_TARGETS:
            return failure("Unknown modal type")
        view, message = _MODAL_TARGETS[modal_type]
        await maybe_await(context.navigation.change_view(view))
        await maybe_await(context.navigation.open_modal(modal_type))
        return success(message)


class ViewPatientDetailsTool(Tool):

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="view_patient_details",
            description="Navigate to the patient detail view for a specific patient ID.",
            category=ToolCategory.NAVIGATION,
            parameters=[
                ToolParameter(name="patientId", type="string", required=True),
            ],
        )

    async def execute(self, parameters: Dict[str, Any], context: ToolExecutionContext) -> Dict[str, Any]:
        patient_id = str(parameters["patientId"]).strip()
        patient = context.find_patient(patient_id)
        if patient is None:
            return failure(f"No patient found with ID {patient_id}.")
        await maybe_await(context.navigation.select_patient(patient.id))
        await maybe_await(context.navigation.change_view("patients"))
        return success(f"Navigated to details for patient {patient.full_name}", patientId=patient.id)
