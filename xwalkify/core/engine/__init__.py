"""Engine — the migration state machine."""
