"""Child and caseload analytics over graph snapshots."""
from .caseload import compute_caseload_analytics, find_child_candidates, looks_like_child
from .child import compute_child_analytics, describe_network_health, network_health_score
from .models import (
    CaseloadAnalytics,
    ChildAnalytics,
    ChildSummary,
    Flag,
    FlagDetail,
    FlagTrend,
    MemberStat,
    PriorityChild,
    RoleShare,
    Severity,
    WeekBucket,
)

__all__ = [
    "CaseloadAnalytics",
    "ChildAnalytics",
    "ChildSummary",
    "Flag",
    "FlagDetail",
    "FlagTrend",
    "MemberStat",
    "PriorityChild",
    "RoleShare",
    "Severity",
    "WeekBucket",
    "compute_caseload_analytics",
    "compute_child_analytics",
    "describe_network_health",
    "find_child_candidates",
    "looks_like_child",
    "network_health_score",
]
