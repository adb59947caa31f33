"""
Shared fixtures: seeded clinic store, tool context, fake transport and
fake audio pipeline. No test touches a real network or audio device.
"""

import asyncio
import base64
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from voice_receptionist.config import AppConfig, GeminiLiveConfig, SessionConfig
from voice_receptionist.store import InMemoryClinicStore
from voice_receptionist.tools.context import ConversationMode, ToolExecutionContext
from voice_receptionist.tools.registry import tool_registry
from voice_receptionist.transport.base import LiveServerMessage, RealtimeTransport

SEED_PATH = Path(__file__).resolve().parent.parent / "config" / "seed-data.yaml"
TODAY = date(2026, 10, 17)

TOOLS_CONFIG = {
    "tools": {
        "register_new_patient": {"site_id": "SITE-009", "id_prefix": "106-"},
    }
}


@pytest.fixture
def store():
    """In-memory store seeded with the demo roster (immediate updates)."""
    return InMemoryClinicStore.from_yaml(str(SEED_PATH))


@pytest.fixture
def deferred_store():
    """Store whose mutations only become visible after flush()."""
    return InMemoryClinicStore.from_yaml(str(SEED_PATH), defer_updates=True)


def make_context(store, mode=ConversationMode.STAFF) -> ToolExecutionContext:
    return ToolExecutionContext.from_store(
        "test-session",
        store,
        mode=mode,
        config=TOOLS_CONFIG,
        today=lambda: TODAY,
    )


@pytest.fixture
def tool_context(store):
    return make_context(store)


@pytest.fixture
def patient_context(store):
    return make_context(store, ConversationMode.PATIENT)


@pytest.fixture
def deferred_context(deferred_store):
    return make_context(deferred_store, ConversationMode.PATIENT)


@pytest.fixture
def registry():
    tool_registry.clear()
    tool_registry.initialize_default_tools()
    yield tool_registry
    tool_registry.clear()


@pytest.fixture
def app_config():
    return AppConfig(
        gemini=GeminiLiveConfig(api_key="test-key"),
        session=SessionConfig(connect_timeout_sec=0.05),
    )


class FakeTransport(RealtimeTransport):
    """Records traffic; tests drive the callbacks directly."""

    def __init__(self, session_id: str, connect_error: Optional[Exception] = None, hang: bool = False):
        self.session_id = session_id
        self.connect_error = connect_error
        self.hang = hang
        self.config = None
        self.callbacks = None
        self.connected = False
        self.opened = False
        self.close_calls = 0
        self.audio_frames: List[Any] = []
        self.sent_batches: List[List[Any]] = []

    @property
    def is_open(self) -> bool:
        return self.opened and self.close_calls == 0

    async def connect(self, config, callbacks) -> None:
        self.config = config
        self.callbacks = callbacks
        if self.hang:
            await asyncio.Event().wait()
        if self.connect_error is not None:
            raise self.connect_error
        self.connected = True

    def send_audio(self, frame) -> None:
        if self.is_open:
            self.audio_frames.append(frame)

    async def send_tool_results(self, results) -> None:
        self.sent_batches.append(list(results))

    async def close(self) -> None:
        self.close_calls += 1

    # -- test drivers --------------------------------------------------------

    async def open(self) -> None:
        self.opened = True
        await self.callbacks.on_open()

    async def deliver(self, data: Dict[str, Any]) -> None:
        await self.callbacks.on_message(LiveServerMessage.from_dict(data))


class FakeAudioPipeline:

    def __init__(self, acquire_error: Optional[Exception] = None):
        self.acquire_error = acquire_error
        self.acquired = False
        self.capturing = False
        self.on_frame = None
        self.played: List[str] = []
        self.interrupts = 0
        self.close_calls = 0
        self.audio_level = 0.0

    def acquire(self) -> None:
        if self.acquire_error is not None:
            raise self.acquire_error
        self.acquired = True

    def start_capture(self, on_frame, on_level=None, loop=None) -> None:
        self.capturing = True
        self.on_frame = on_frame

    def play_base64(self, data: str):
        base64.b64decode(data)
        self.played.append(data)

    def interrupt_playback(self) -> int:
        self.interrupts += 1
        return 0

    def close(self) -> None:
        self.close_calls += 1
        self.capturing = False


class EngineHarness:
    """Factories plus an event log for ReceptionistEngine tests."""

    def __init__(self):
        self.transports: List[FakeTransport] = []
        self.pipelines: List[FakeAudioPipeline] = []
        self.events: List[Dict[str, Any]] = []
        self.transport_kwargs: Dict[str, Any] = {}
        self.audio_kwargs: Dict[str, Any] = {}

    def transport_factory(self, session_id: str) -> FakeTransport:
        transport = FakeTransport(session_id, **self.transport_kwargs)
        self.transports.append(transport)
        return transport

    def audio_factory(self) -> FakeAudioPipeline:
        pipeline = FakeAudioPipeline(**self.audio_kwargs)
        self.pipelines.append(pipeline)
        return pipeline

    async def on_event(self, event: Dict[str, Any]) -> None:
        self.events.append(event)

    def of_type(self, event_type: str) -> List[Dict[str, Any]]:
        return [e for e in self.events if e["type"] == event_type]


@pytest.fixture
def harness():
    return EngineHarness()


@pytest.fixture
def open_transport():
    transport = FakeTransport("test-session")
    transport.opened = True
    return transport


@pytest.fixture
def closed_transport():
    return FakeTransport("test-session")
