"""Helpers shared by the configuration and the backup pipeline."""
