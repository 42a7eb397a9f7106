"""Command-line entry point for the sensor logger."""
