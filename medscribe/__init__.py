"""MedScribe - medical dictation, transcription and clinical note generation."""

__version__ = "0.1.0"
