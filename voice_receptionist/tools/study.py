"""Read-only study information for general inquiries."""

from typing import Any, Dict

from voice_receptionist.collaborators import maybe_await
from voice_receptionist.models import ENROLLED_STATUSES
from voice_receptionist.tools.base import Tool, ToolCategory, ToolDefinition, ToolParameter
from voice_receptionist.tools.context import ToolExecutionContext

_CRITERIA_KEYWORDS = ("criteria", "eligib", "inclusion", "exclusion", "qualify")


def recruitment_percentage(enrolled: int, target: int) -> str:
    if target <= 0:
        return "0%"
    # Half-up rounding
    return f"{int(enrolled * 100 / target + 0.5)}%"


class GetStudyDetailsTool(Tool):

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="get_study_details",
            description=(
                "Get details about the current clinical study, including title, phase, description, "
                "status, and recruitment progress. Useful for answering general inquiries."
            ),
            category=ToolCategory.STUDY,
            parameters=[
                ToolParameter(name="query", type="string",
                              description="Specific aspect of study to retrieve, or null for general summary"),
            ],
        )

    async def execute(self, parameters: Dict[str, Any], context: ToolExecutionContext) -> Dict[str, Any]:
        study = await maybe_await(context.study.get_study_details())
        enrolled = sum(1 for p in context.patients() if p.status in ENROLLED_STATUSES)

        result = {
            "success": True,
            "title": study.title,
            "protocolNumber": study.protocol_number,
            "phase": study.phase,
            "status": study.status,
            "description": study.description,
            "recruitment": {
                "enrolled": enrolled,
                "target": study.recruitment_target,
                "percentage": recruitment_percentage(enrolled, study.recruitment_target),
            },
            "sponsor": study.sponsor,
        }
        query = str(parameters.get("query") or "").lower()
        if any(k in query for k in _CRITERIA_KEYWORDS):
            result["inclusionCriteria"] = study.inclusion_criteria
            result["exclusionCriteria"] = study.exclusion_criteria
        return result
