"""Xpense: personal expense tracking with CSV import and JSON backups."""

__version__ = "1.0.0"
