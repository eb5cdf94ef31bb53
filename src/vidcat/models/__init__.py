"""Domain models for the video catalog."""
