"""Utility modules: configuration, constants, validation and datetime helpers."""
