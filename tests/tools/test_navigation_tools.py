"""
Tests for UI navigation tools and the study information tool.
"""

import pytest

from voice_receptionist.tools.navigation import (
    NavigateAppTool,
    OpenActionModalTool,
    ViewPatientDetailsTool,
)
from voice_receptionist.tools.study import GetStudyDetailsTool, recruitment_percentage


class TestNavigateAppTool:

    @pytest.mark.asyncio
    async def test_changes_view(self, tool_context, store):
        result = await NavigateAppTool().execute({"view": "visits"}, tool_context)

        assert result == {"success": True, "message": "Navigated to visits view."}
        assert store.current_view == "visits"

    def test_view_enum_declared(self):
        schema = NavigateAppTool().definition.to_gemini_schema()
        assert schema["parameters"]["properties"]["view"]["enum"] == [
            "dashboard", "patients", "visits", "reports", "study", "settings",
        ]


class TestOpenActionModalTool:

    @pytest.mark.asyncio
    async def test_add_patient_opens_on_patients(self, tool_context, store):
        result = await OpenActionModalTool().execute({"modalType": "add_patient"}, tool_context)

        assert result["success"] is True
        assert "Add Patient" in result["message"]
        assert store.current_view == "patients"
        assert store.open_modal_type == "add_patient"

    @pytest.mark.asyncio
    async def test_schedule_visit_opens_on_visits(self, tool_context, store):
        await OpenActionModalTool().execute({"modalType": "schedule_visit"}, tool_context)

        assert store.current_view == "visits"
        assert store.open_modal_type == "schedule_visit"

    @pytest.mark.asyncio
    async def test_invalid_modal_rejected_by_validation(self):
        with pytest.raises(ValueError):
            await OpenActionModalTool().validate_parameters({"modalType": "delete_everything"})


class TestViewPatientDetailsTool:

    @pytest.mark.asyncio
    async def test_selects_patient(self, tool_context, store):
        result = await ViewPatientDetailsTool().execute({"patientId": "101-003"}, tool_context)

        assert result["message"] == "Navigated to details for patient Robert Jones"
        assert store.selected_patient_id == "101-003"
        assert store.current_view == "patients"

    @pytest.mark.asyncio
    async def test_unknown_patient(self, tool_context, store):
        result = await ViewPatientDetailsTool().execute({"patientId": "404"}, tool_context)

        assert result == {"success": False, "error": "No patient found with ID 404."}
        assert store.selected_patient_id is None


class TestRecruitmentPercentage:

    @pytest.mark.parametrize("enrolled,target,expected", [
        (1, 50, "2%"),
        (2, 50, "4%"),
        (1, 8, "13%"),
        (1, 3, "33%"),
        (5, 0, "0%"),
    ])
    def test_rounding(self, enrolled, target, expected):
        assert recruitment_percentage(enrolled, target) == expected


class TestGetStudyDetailsTool:

    @pytest.mark.asyncio
    async def test_general_summary(self, tool_context):
        result = await GetStudyDetailsTool().execute({}, tool_context)

        assert result["success"] is True
        assert result["protocolNumber"] == "NEXUS-X01"
        # Active and Completed patients count as enrolled; Screening does not
        assert result["recruitment"] == {"enrolled": 2, "target": 50, "percentage": "4%"}
        assert "inclusionCriteria" not in result

    @pytest.mark.asyncio
    async def test_criteria_on_request(self, tool_context):
        result = await GetStudyDetailsTool().execute({"query": "Who is eligible?"}, tool_context)

        assert "inclusionCriteria" in result
        assert "exclusionCriteria" in result
