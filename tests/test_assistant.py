"""Tests for the LLM client, the external-assistant adapter and the context snapshot."""

import logging
from unittest.mock import AsyncMock, MagicMock, patch

import httpx

from carechat.models.context import (
    MedicalSummary,
    MilestoneProgress,
    MilestoneSnapshot,
    PatientContext,
    PatientSnapshot,
    RecoveryStatus,
    SurgerySnapshot,
)
from carechat.models.records import VitalSigns
from carechat.services import assistant, fetchers, llm
from carechat.services.context import build_patient_context

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/gemini-2.5-flash:generateContent"


def sample_context():
    return PatientContext(
        patient=PatientSnapshot(name="Priya Sharma", age=36, gender="female", department="cardiology"),
        medical_summary=MedicalSummary(
            total_records=1,
            latest_diagnosis="Coronary artery disease",
            current_medications="Aspirin 75mg OD",
            allergies="Penicillin",
        ),
        surgeries=[SurgerySnapshot(type="CABG", date="2026-01-05T08:00:00+00:00", surgeon="Dr. Kapoor")],
        recovery_status=RecoveryStatus(
            days_post_operation=3,
            total_post_op_notes=2,
            latest_vital_signs=VitalSigns(blood_pressure="122/78", heart_rate=84),
            latest_pain_level=4,
        ),
        milestones=MilestoneProgress(
            total=2,
            achieved=1,
            progress_percentage=50,
            recent_milestones=[
                MilestoneSnapshot(type="mobility", description="Walk", achieved=False),
                MilestoneSnapshot(type="pain_management", description="Pain < 4", achieved=True),
            ],
        ),
    )


def failing_client(exc):
    client = MagicMock()
    client.provider = "gemini"
    client.available.return_value = True
    client.generate_text = AsyncMock(side_effect=exc)
    return client


def gemini_response(status_code, payload):
    return httpx.Response(status_code, json=payload, request=httpx.Request("POST", GEMINI_URL))


class TestAsk:
    async def test_network_failure_with_context_synthesises_summary(self):
        client = failing_client(httpx.ConnectError("connection refused"))

        text = await assistant.ask("How is she?", sample_context(), client=client)
        assert "Priya Sharma" in text
        assert "Coronary artery disease" in text
        assert text.endswith(assistant.CLOSING_PROMPT)

    async def test_failure_without_context_returns_fixed_apology(self):
        client = failing_client(httpx.ReadTimeout("timed out"))
        assert await assistant.ask("hi", None, client=client) == assistant.FALLBACK_RESPONSE

    async def test_unavailable_provider_does_not_call_out(self):
        client = llm.LLMClient(provider="none")
        with patch.object(llm.LLMClient, "generate_text", AsyncMock()) as generate:
            text = await assistant.ask("hi", sample_context(), client=client)
        generate.assert_not_awaited()
        assert text.startswith("Patient: Priya Sharma")

    async def test_blank_answer_falls_back(self):
        client = failing_client(None)
        client.generate_text = AsyncMock(return_value="   ")
        assert await assistant.ask("hi", None, client=client) == assistant.FALLBACK_RESPONSE

    async def test_answer_passed_through(self):
        client = failing_client(None)
        client.generate_text = AsyncMock(return_value="Keep monitoring her INR.")

        text = await assistant.ask("Anything to watch?", sample_context(), client=client)
        assert text == "Keep monitoring her INR."
        prompt = client.generate_text.await_args.args[0]
        assert prompt.startswith("Context: {")
        assert "Question: Anything to watch?" in prompt
        assert prompt.endswith("Provide a helpful medical response based on the context provided.")


class TestSynthesis:
    def test_summary_lines_in_order(self):
        lines = assistant.synthesize_patient_summary(sample_context()).splitlines()
        assert lines == [
            "Patient: Priya Sharma",
            "Age: 36",
            "Gender: female",
            "Department: cardiology",
            "Latest diagnosis: Coronary artery disease",
            "Current medications: Aspirin 75mg OD",
            "Allergies: Penicillin",
            "Surgeries: CABG on 2026-01-05",
            "Days post-operation: 3",
            "Latest vitals: BP: 122/78, HR: 84",
            "Pain level: 4",
            "Mobility: Not recorded",
            "Wound: Not recorded",
            "Complications: None",
            "Milestones progress: 50%",
            "Recent milestones: mobility, pain_management (achieved)",
            assistant.CLOSING_PROMPT,
        ]

    def test_missing_sections_are_skipped(self):
        context = PatientContext(patient=PatientSnapshot(name="Ann"))
        lines = assistant.synthesize_patient_summary(context).splitlines()
        assert lines == ["Patient: Ann", assistant.CLOSING_PROMPT]

    def test_prompt_without_context_is_the_message(self):
        assert assistant.build_prompt("hello") == "hello"


class TestLLMClient:
    def test_auto_prefers_gemini(self):
        with (
            patch.object(llm, "GEMINI_API_KEY", "g-key"),
            patch.object(llm, "ANTHROPIC_API_KEY", ""),
            patch.object(llm, "OPENAI_API_KEY", ""),
        ):
            client = llm.LLMClient(provider="auto")
            assert client.provider == "gemini"
            assert client.available() is True

    def test_auto_without_keys_is_none(self):
        with (
            patch.object(llm, "GEMINI_API_KEY", ""),
            patch.object(llm, "ANTHROPIC_API_KEY", ""),
            patch.object(llm, "OPENAI_API_KEY", ""),
        ):
            client = llm.LLMClient(provider="auto")
            assert client.provider == "none"
            assert client.available() is False

    def test_unknown_provider_disables_assistant(self):
        assert llm.LLMClient(provider="bard").provider == "none"

    async def test_unavailable_raises(self):
        client = llm.LLMClient(provider="none")
        try:
            await client.generate_text("hi")
        except RuntimeError as e:
            assert "unavailable" in str(e)
        else:
            raise AssertionError("expected RuntimeError")

    async def test_gemini_request_and_response(self):
        payload = {"candidates": [{"content": {"parts": [{"text": "Answer"}]}}]}
        post = AsyncMock(return_value=gemini_response(200, payload))
        with (
            patch.object(llm, "GEMINI_API_KEY", "g-key"),
            patch.object(llm, "ASSISTANT_MODEL", ""),
            patch.object(httpx.AsyncClient, "post", post),
        ):
            text = await llm.LLMClient(provider="gemini").generate_text("prompt text")

        assert text == "Answer"
        url = post.await_args.args[0]
        kwargs = post.await_args.kwargs
        assert url == GEMINI_URL
        assert kwargs["headers"] == {"x-goog-api-key": "g-key"}
        assert "params" not in kwargs
        assert kwargs["json"]["contents"] == [{"parts": [{"text": "prompt text"}]}]
        assert kwargs["json"]["generationConfig"] == {
            "temperature": 0.7,
            "topK": 40,
            "topP": 0.95,
            "maxOutputTokens": 1024,
        }

    async def test_gemini_key_stays_out_of_url_and_logs(self, caplog):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": "ok"}]}}]})

        real_client = httpx.AsyncClient

        def client_factory(**kwargs):
            return real_client(transport=httpx.MockTransport(handler), **kwargs)

        with (
            patch.object(llm, "GEMINI_API_KEY", "SECRET-KEY-123"),
            patch.object(llm.httpx, "AsyncClient", client_factory),
            caplog.at_level(logging.INFO),
        ):
            assert await llm.LLMClient(provider="gemini").generate_text("prompt") == "ok"

        assert requests[0].headers["x-goog-api-key"] == "SECRET-KEY-123"
        assert "SECRET-KEY-123" not in str(requests[0].url)
        assert "SECRET-KEY-123" not in caplog.text

    async def test_gemini_error_status_raises(self):
        post = AsyncMock(return_value=gemini_response(503, {"error": "busy"}))
        with (
            patch.object(llm, "GEMINI_API_KEY", "g-key"),
            patch.object(httpx.AsyncClient, "post", post),
        ):
            try:
                await llm.LLMClient(provider="gemini").generate_text("prompt")
            except httpx.HTTPStatusError:
                pass
            else:
                raise AssertionError("expected HTTPStatusError")

    async def test_gemini_without_candidates_returns_empty(self):
        post = AsyncMock(return_value=gemini_response(200, {"candidates": []}))
        with (
            patch.object(llm, "GEMINI_API_KEY", "g-key"),
            patch.object(httpx.AsyncClient, "post", post),
        ):
            assert await llm.LLMClient(provider="gemini").generate_text("prompt") == ""

    async def test_ask_falls_back_on_gemini_error_status(self):
        post = AsyncMock(return_value=gemini_response(500, {}))
        with (
            patch.object(llm, "GEMINI_API_KEY", "g-key"),
            patch.object(httpx.AsyncClient, "post", post),
        ):
            text = await assistant.ask("hi", sample_context(), client=llm.LLMClient(provider="gemini"))
        assert text.startswith("Patient: Priya Sharma")

    async def test_anthropic_text_blocks_joined(self):
        block = MagicMock()
        block.text = "Hello from Claude"
        mock_response = MagicMock()
        mock_response.content = [block]
        mock_client = AsyncMock()
        mock_client.messages.create = AsyncMock(return_value=mock_response)

        client = llm.LLMClient(provider="anthropic")
        client._anthropic = mock_client
        assert await client.generate_text("hi", max_tokens=64) == "Hello from Claude"
        kwargs = mock_client.messages.create.await_args.kwargs
        assert kwargs["max_tokens"] == 64
        assert kwargs["messages"] == [{"role": "user", "content": "hi"}]
        assert "top_p" not in kwargs
        assert "top_k" not in kwargs

    async def test_openai_message_content(self):
        mock_response = MagicMock()
        mock_response.choices = [MagicMock()]
        mock_response.choices[0].message.content = "Hello from GPT"
        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(return_value=mock_response)

        client = llm.LLMClient(provider="openai")
        client._openai = mock_client
        assert await client.generate_text("hi") == "Hello from GPT"


class TestPatientContext:
    async def _seed(self, storage, make_patient):
        p = await make_patient("Priya Sharma", date_of_birth="1990-05-01", blood_type="B+")
        await storage.insert("medical_records", {
            "patient_id": p["id"], "diagnosis": "Old diagnosis", "created_at": "2026-01-01T00:00:00+00:00",
        })
        await storage.insert("medical_records", {
            "patient_id": p["id"], "diagnosis": "Coronary artery disease", "medications": "Aspirin",
            "created_at": "2026-01-02T00:00:00+00:00",
        })
        await storage.insert("surgeries", {
            "patient_id": p["id"], "surgery_type": "CABG", "surgery_date": "2026-01-03T08:00:00+00:00",
            "surgeon_name": "Dr. Kapoor", "duration_minutes": 240,
        })
        for day, pain in ((1, 6), (3, 4)):
            await storage.insert("post_operative_notes", {
                "patient_id": p["id"], "day_number": day, "pain_level": pain,
                "vital_signs": {"heart_rate": 90 - day},
            })
        await storage.insert("recovery_milestones", {
            "patient_id": p["id"], "milestone_type": "mobility", "milestone_description": "Walk",
            "achieved": True,
        })
        return p

    async def test_snapshot_sections(self, storage, make_patient):
        p = await self._seed(storage, make_patient)

        context = await build_patient_context(storage, p["id"])
        assert context.patient.name == "Priya Sharma"
        assert context.patient.blood_type == "B+"
        assert context.medical_summary.total_records == 2
        assert context.medical_summary.latest_diagnosis == "Coronary artery disease"
        assert context.medical_summary.allergies == "None"
        assert context.surgeries[0].duration == 240
        assert context.recovery_status.days_post_operation == 3
        assert context.recovery_status.latest_pain_level == 4
        assert context.recovery_status.latest_vital_signs.heart_rate == 87
        assert context.milestones.progress_percentage == 100

    async def test_failed_section_is_missing(self, storage, make_patient):
        p = await self._seed(storage, make_patient)

        with patch.object(fetchers, "fetch_surgeries", AsyncMock(return_value=None)):
            context = await build_patient_context(storage, p["id"])
        assert context.surgeries is None
        assert context.medical_summary is not None
        assert context.milestones is not None

    async def test_no_patient_no_context(self, storage):
        assert await build_patient_context(storage, "missing") is None
        assert await build_patient_context(storage, None) is None
