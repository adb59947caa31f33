"""
Tests for the standalone runner's event handling.
"""

import asyncio

import pytest

from voice_receptionist.main import event_handler


class TestEventHandler:

    @pytest.mark.asyncio
    async def test_session_end_releases_runner(self):
        ended = asyncio.Event()
        on_event = event_handler(ended)

        await on_event({"type": "StateChanged", "state": "connecting", "previous": "idle"})
        await on_event({"type": "StateChanged", "state": "staff", "previous": "connecting"})
        assert not ended.is_set()

        await on_event({"type": "SessionError", "kind": "transport", "message": "Voice connection closed"})
        await on_event({"type": "StateChanged", "state": "idle", "previous": "staff"})
        assert ended.is_set()

    @pytest.mark.asyncio
    async def test_other_events_do_not_end_session(self):
        ended = asyncio.Event()
        on_event = event_handler(ended)

        await on_event({"type": "AudioLevel", "level": 0.2})
        await on_event({"type": "Transcript", "role": "user", "text": "Hello"})
        await on_event({"type": "ToolCallsDispatched", "count": 1, "names": ["navigate_app"]})

        assert not ended.is_set()
