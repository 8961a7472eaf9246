"""Shared constants, exceptions and I/O helpers."""
