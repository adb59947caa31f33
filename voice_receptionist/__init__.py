"""
Voice receptionist for clinical-trial sites.

Streams microphone audio to a live conversational model, plays back its
audio replies and executes the model's tool calls (scheduling, patient
registration, adverse-event logging, navigation) against application state.
"""

__version__ = "1.0.0"
