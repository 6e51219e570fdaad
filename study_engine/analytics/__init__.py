"""
Analytics package exports.
"""

from study_engine.analytics.service import build_project_dashboard
from study_engine.analytics.types import (
    ActivityEvent,
    DueCounts,
    ProjectDashboardData,
    SectionScore,
)

__all__ = [
    "build_project_dashboard",
    "ActivityEvent",
    "DueCounts",
    "ProjectDashboardData",
    "SectionScore",
]
