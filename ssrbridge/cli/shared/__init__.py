"""Shared helpers for CLI and worker entry points."""
