"""Core data structures, time estimation and playback lookup."""
