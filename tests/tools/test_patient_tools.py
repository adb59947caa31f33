"""
Unit tests for identity tools: verify_patient, register_new_patient,
find_patient_internal, get_my_visits.
"""

import pytest

from voice_receptionist.models import Gender, Patient, PatientStatus
from voice_receptionist.tools.patients import (
    FindPatientInternalTool,
    GetMyVisitsTool,
    RegisterNewPatientTool,
    VerifyPatientTool,
)


def add_second_smith(store):
    store.add_patient(Patient(
        id="101-004",
        first_name="Brian",
        last_name="Smith",
        date_of_birth="1990-02-14",
        status=PatientStatus.ENROLLED,
    ))


class TestVerifyPatientTool:

    @pytest.fixture
    def tool(self):
        return VerifyPatientTool()

    def test_definition(self, tool):
        definition = tool.definition
        assert definition.name == "verify_patient"
        assert [p.name for p in definition.parameters if p.required] == ["name"]

    @pytest.mark.asyncio
    async def test_partial_name_verifies_unique_patient(self, tool, tool_context):
        result = await tool.execute({"name": "Alice"}, tool_context)

        assert result["success"] is True
        assert result["patientId"] == "101-002"
        assert "Alice Smith" in result["message"]
        assert tool_context.active_patient_id == "101-002"

    @pytest.mark.asyncio
    async def test_case_insensitive(self, tool, tool_context):
        result = await tool.execute({"name": "ROBERT jones"}, tool_context)
        assert result["patientId"] == "101-003"

    @pytest.mark.asyncio
    async def test_email_fallback(self, tool, tool_context):
        result = await tool.execute({"name": "alice.s@example"}, tool_context)
        assert result["patientId"] == "101-002"

    @pytest.mark.asyncio
    async def test_ambiguous_name_reports_and_keeps_identity(self, tool, tool_context, store):
        add_second_smith(store)
        tool_context.set_active_patient("101-001")

        result = await tool.execute({"name": "Smith"}, tool_context)

        assert result["success"] is False
        assert result["ambiguous"] is True
        assert result["count"] == 2
        assert {c["id"] for c in result["candidates"]} == {"101-002", "101-004"}
        assert tool_context.active_patient_id == "101-001"

    @pytest.mark.asyncio
    async def test_dob_disambiguates(self, tool, tool_context, store):
        add_second_smith(store)

        result = await tool.execute({"name": "Smith", "dob": "1990-02-14"}, tool_context)

        assert result["success"] is True
        assert result["patientId"] == "101-004"

    @pytest.mark.asyncio
    async def test_birth_year_accepted(self, tool, tool_context):
        result = await tool.execute({"name": "John Doe", "dob": "1985"}, tool_context)
        assert result["success"] is True

    @pytest.mark.asyncio
    async def test_wrong_dob_does_not_verify(self, tool, tool_context):
        result = await tool.execute({"name": "John Doe", "dob": "1999-01-01"}, tool_context)

        assert result["success"] is False
        assert tool_context.active_patient_id is None

    @pytest.mark.asyncio
    async def test_no_match_is_failure_not_exception(self, tool, tool_context):
        result = await tool.execute({"name": "Zelda"}, tool_context)

        assert result["success"] is False
        assert "not found" in result["error"]


class TestRegisterNewPatientTool:

    @pytest.fixture
    def tool(self):
        return RegisterNewPatientTool()

    @pytest.mark.asyncio
    async def test_registers_and_verifies(self, tool, tool_context, store):
        result = await tool.execute(
            {"firstName": "Maria", "lastName": "Garcia", "dateOfBirth": "1992-03-04"},
            tool_context,
        )

        patient = store.get_patient(result["patientId"])
        assert result["success"] is True
        assert result["patientId"].startswith("106-")
        assert patient.status == PatientStatus.SCREENING
        assert patient.gender == Gender.OTHER
        assert patient.study_id == "STUDY-001"
        assert patient.site_id == "SITE-009"
        assert patient.enrollment_date == "2026-10-17"
        assert tool_context.active_patient_id == patient.id
        assert "Screening visit" in result["message"]

    @pytest.mark.asyncio
    async def test_gender_kept_when_given(self, tool, tool_context, store):
        result = await tool.execute(
            {"firstName": "Tom", "lastName": "Lee", "dateOfBirth": "1970-01-01", "gender": "Male"},
            tool_context,
        )
        assert store.get_patient(result["patientId"]).gender == Gender.MALE

    @pytest.mark.asyncio
    async def test_visible_before_store_applies_it(self, tool, deferred_context, deferred_store):
        result = await tool.execute(
            {"firstName": "Maria", "lastName": "Garcia", "dateOfBirth": "1992-03-04"},
            deferred_context,
        )

        assert deferred_store.get_patient(result["patientId"]) is None
        assert deferred_context.find_patient(result["patientId"]) is not None

        deferred_store.flush()
        ids = [p.id for p in deferred_context.patients()]
        assert ids.count(result["patientId"]) == 1


class TestFindPatientInternalTool:

    @pytest.fixture
    def tool(self):
        return FindPatientInternalTool()

    @pytest.mark.asyncio
    async def test_single_match_selects_and_navigates(self, tool, tool_context, store):
        result = await tool.execute({"name": "doe"}, tool_context)

        assert result["count"] == 1
        assert result["patients"][0] == {"id": "101-001", "name": "John Doe", "status": "Active", "dob": "1985-04-12"}
        assert tool_context.active_patient_id == "101-001"
        assert store.selected_patient_id == "101-001"
        assert store.current_view == "patients"

    @pytest.mark.asyncio
    async def test_multiple_matches_do_not_set_identity(self, tool, tool_context, store):
        result = await tool.execute({"name": "jo"}, tool_context)

        assert result["count"] == 2
        assert result["message"] == "Multiple patients found. Please clarify."
        assert tool_context.active_patient_id is None
        assert store.current_view == "dashboard"

    @pytest.mark.asyncio
    async def test_no_matches(self, tool, tool_context):
        result = await tool.execute({"name": "nobody"}, tool_context)

        assert result["count"] == 0
        assert result["patients"] == []
        assert tool_context.active_patient_id is None


class TestGetMyVisitsTool:

    @pytest.fixture
    def tool(self):
        return GetMyVisitsTool()

    @pytest.mark.asyncio
    async def test_requires_identity(self, tool, tool_context):
        result = await tool.execute({}, tool_context)

        assert result["success"] is False
        assert "verify" in result["error"].lower()

    @pytest.mark.asyncio
    async def test_lists_visits_for_active_patient(self, tool, tool_context):
        tool_context.set_active_patient("101-001")

        result = await tool.execute({}, tool_context)

        assert result["patientName"] == "John Doe"
        assert len(result["visits"]) == 5
        assert result["visits"][0]["id"] == "V1"
        assert result["message"] == "Found 5 visits for John Doe."

    @pytest.mark.asyncio
    async def test_explicit_id_overrides_active(self, tool, tool_context):
        tool_context.set_active_patient("101-001")
        result = await tool.execute({"patientId": "101-003"}, tool_context)
        assert result["patientName"] == "Robert Jones"

    @pytest.mark.asyncio
    async def test_unknown_patient(self, tool, tool_context):
        result = await tool.execute({"patientId": "999"}, tool_context)
        assert result == {"success": False, "error": "Patient not found"}
