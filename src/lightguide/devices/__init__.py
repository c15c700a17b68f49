"""Instrument-specific device integrations."""
