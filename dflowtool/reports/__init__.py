"""Console reports for dflowtool runs.

Provides:
- Discovery summary (summary.py)
"""

from dflowtool.reports.summary import build_discovery_summary

__all__ = ["build_discovery_summary"]
