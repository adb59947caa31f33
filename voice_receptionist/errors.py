"""Exception hierarchy for infrastructure failures.

Business failures inside tools (patient not found, identity missing) are not
exceptions; they are returned to the model as structured tool results.
"""


class ReceptionistError(Exception):
    """Base class for all voice receptionist errors."""


class ConfigurationError(ReceptionistError):
    """Required configuration (e.g. the model credential) is missing or invalid."""


class AudioDeviceError(ReceptionistError):
    """Microphone or speaker could not be acquired."""


class TransportError(ReceptionistError):
    """Failure on the realtime model connection."""


class TransportConnectError(TransportError):
    """The connection could not be established (network, auth, rejected setup)."""

