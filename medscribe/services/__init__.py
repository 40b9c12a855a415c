"""
Services module - audio capture, transcription, generation, storage.
"""
