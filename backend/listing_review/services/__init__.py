"""Domain services for the draft review workflow."""
