"""Scheduling helpers."""

from .apsched_adapter import SCAN_JOB_ID, APSchedulerAdapter

__all__ = ["APSchedulerAdapter", "SCAN_JOB_ID"]
