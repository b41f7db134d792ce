"""Overtime calculation and timesheet reconciliation engine."""

__version__ = "0.1.0"
