"""Reporting package projecting search snapshots into export-ready tables."""

from .roster_report import RosterReport

__all__ = ["RosterReport"]
