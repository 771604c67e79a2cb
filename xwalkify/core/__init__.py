"""Core — models, services, and the migration pipeline."""
