"""Helpers shared by the pipeline stages."""
