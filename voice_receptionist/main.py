"""
Standalone runner: one voice session against the in-memory clinic store.

    GEMINI_API_KEY=... python -m voice_receptionist

RECEPTIONIST_CONFIG overrides the config path; RECEPTIONIST_MODE
(staff|patient) overrides session.default_mode.
"""

import asyncio
import os
import signal
from typing import Any, Awaitable, Callable, Dict

import structlog

from voice_receptionist.config import DEFAULT_CONFIG_PATH, load_config, validate_config
from voice_receptionist.config.loaders import resolve_config_path
from voice_receptionist.core.engine import ReceptionistEngine
from voice_receptionist.errors import ConfigurationError
from voice_receptionist.logging_config import configure_logging
from voice_receptionist.store import InMemoryClinicStore

logger = structlog.get_logger(__name__)


async def log_event(event: Dict[str, Any]) -> None:
    event = dict(event)
    event_type = event.pop("type", "Unknown")
    if event_type == "AudioLevel":
        return
    if event_type == "SessionError":
        logger.error("Session error", **event)
    elif event_type == "Transcript":
        # Spoken text may carry patient names
        logger.debug(event_type, **event)
    else:
        logger.info(event_type, **event)


def event_handler(session_ended: asyncio.Event) -> Callable[[Dict[str, Any]], Awaitable[None]]:
    """Log every engine event; set ``session_ended`` once the engine drops back to idle."""

    async def on_event(event: Dict[str, Any]) -> None:
        await log_event(event)
        if event.get("type") == "StateChanged" and event.get("state") == "idle":
            session_ended.set()

    return on_event


async def main():
    config = load_config(os.getenv("RECEPTIONIST_CONFIG", DEFAULT_CONFIG_PATH))
    configure_logging(log_level=config.logging.level)

    errors, warnings = validate_config(config)
    if errors:
        logger.error("Configuration validation failed", errors=errors, warnings=warnings)
        raise ConfigurationError(f"Configuration errors: {errors}")
    if warnings:
        logger.warning("Configuration warnings", warnings=warnings)

    if not config.seed_data:
        raise ConfigurationError("seed_data must point at a roster/study YAML file")
    store = InMemoryClinicStore.from_yaml(resolve_config_path(config.seed_data))

    shutdown_event = asyncio.Event()
    engine = ReceptionistEngine(config, store, on_event=event_handler(shutdown_event))
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, shutdown_event.set)

    mode = os.getenv("RECEPTIONIST_MODE", config.session.default_mode)
    if await engine.start(mode):
        await shutdown_event.wait()
    await engine.stop()


def run() -> None:
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        pass
    finally:
        logger.info("Voice receptionist has shut down.")


if __name__ == "__main__":
    run()
