"""Utility helpers for the capture gallery."""
