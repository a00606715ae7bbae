"""Scheduling and agenda engine for dealership service jobs."""

__version__ = "0.1.0"
