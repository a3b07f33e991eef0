"""Crew payroll: hours classification, review flagging and daily labor reports."""

__version__ = "0.1.0"
