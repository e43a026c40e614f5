"""Configuration: machine limits, profiles and saved preferences."""
