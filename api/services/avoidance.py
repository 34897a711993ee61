"""
Avoidance report for Work-OS.

Turns task/client activity into an avoidance report and the one-paragraph
summary that the chat context builder includes as "Avoidance context".

The database queries that gather stale clients, deferral counts and
completions live with the caller; everything here works on plain records.
"""
import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Literal, Optional, Sequence
from zoneinfo import ZoneInfo

logger = logging.getLogger(__name__)

Severity = Literal["warning", "critical", "severe"]

DRAIN_TYPES = ("deep", "shallow", "admin")
PATTERN_WINDOW_DAYS = 7
LOCAL_TIMEZONE = ZoneInfo("America/New_York")

# Score weights (overall score is capped at 100, lower is better)
STALE_CLIENT_WEIGHT = 15
DEFERRED_TASK_WEIGHT = 10
PATTERN_WEIGHT = 20

NO_ISSUES_SUMMARY = "No avoidance issues detected."
NO_ISSUES_RECOMMENDATION = "No major avoidance patterns detected. Keep up the good work!"


@dataclass
class StaleClient:
    """A client that has not been touched for a while."""
    name: str
    days_since_touch: int
    last_move_title: Optional[str] = None
    severity: Severity = "warning"


@dataclass
class DeferredTask:
    """An open task that keeps getting deferred or demoted."""
    task_id: int
    title: str
    client_name: str
    defer_count: int
    days_since_created: int


@dataclass
class AvoidancePattern:
    """A behavioral pattern detected from completions."""
    type: str
    description: str
    evidence: str


@dataclass
class CompletedTask:
    """A completed task, as far as pattern detection cares."""
    completed_at: datetime
    client_id: Optional[int] = None
    drain_type: Optional[str] = None


@dataclass
class AvoidanceReport:
    """Full avoidance report."""
    stale_clients: list[StaleClient] = field(default_factory=list)
    frequently_deferred: list[DeferredTask] = field(default_factory=list)
    avoidance_patterns: list[AvoidancePattern] = field(default_factory=list)
    overall_score: int = 0
    recommendations: list[str] = field(default_factory=list)


def stale_severity(days_since_touch: int) -> Severity:
    """Severity for a client untouched for the given number of days."""
    if days_since_touch >= 5:
        return "severe"
    if days_since_touch >= 3:
        return "critical"
    return "warning"


def _as_aware(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def detect_avoidance_patterns(
    completed_tasks: Sequence[CompletedTask],
    now: Optional[datetime] = None,
) -> list[AvoidancePattern]:
    """
    Detect avoidance patterns from the last week of completions.

    Patterns:
    - client_concentration: one client got > 60% of completions (3+ clients)
    - drain_avoidance: two or more drain types had no completions
    - morning_avoidance / afternoon_avoidance: under 20% of completions on
      one side of noon (Eastern), once there are more than 5

    Args:
        completed_tasks: Completed tasks (older ones are ignored)
        now: Reference time (default: current UTC time)

    Returns:
        List of detected patterns, in the order above
    """
    now = _as_aware(now or datetime.now(timezone.utc))
    cutoff = now - timedelta(days=PATTERN_WINDOW_DAYS)
    recent = [task for task in completed_tasks if _as_aware(task.completed_at) >= cutoff]

    patterns: list[AvoidancePattern] = []

    by_client = Counter(task.client_id for task in recent)
    if by_client:
        total = sum(by_client.values())
        concentration = max(by_client.values()) / total
        if concentration > 0.6 and len(by_client) > 2:
            patterns.append(AvoidancePattern(
                type="client_concentration",
                description="One client is getting disproportionate attention",
                evidence=f"{round(concentration * 100)}% of tasks went to one client this week",
            ))

    used_drain_types = {task.drain_type for task in recent}
    avoided = [drain for drain in DRAIN_TYPES if drain not in used_drain_types]
    if len(avoided) >= 2:
        patterns.append(AvoidancePattern(
            type="drain_avoidance",
            description=f"Avoiding {', '.join(avoided)} type work",
            evidence=f"No {' or '.join(avoided)} tasks completed this week",
        ))

    morning = sum(1 for task in recent if _as_aware(task.completed_at).astimezone(LOCAL_TIMEZONE).hour < 12)
    afternoon = len(recent) - morning
    total_timed = morning + afternoon
    if total_timed > 5:
        if morning < total_timed * 0.2:
            patterns.append(AvoidancePattern(
                type="morning_avoidance",
                description="Most work happens in the afternoon",
                evidence=f"Only {round(morning / total_timed * 100)}% of moves completed before noon",
            ))
        elif afternoon < total_timed * 0.2:
            patterns.append(AvoidancePattern(
                type="afternoon_avoidance",
                description="Most work happens in the morning",
                evidence=f"Only {round(afternoon / total_timed * 100)}% of moves completed after noon",
            ))

    return patterns


def generate_recommendations(
    stale_clients: Sequence[StaleClient],
    frequently_deferred: Sequence[DeferredTask],
    avoidance_patterns: Sequence[AvoidancePattern],
) -> list[str]:
    """Turn report findings into short, actionable recommendations."""
    recommendations = []

    severe = [client.name for client in stale_clients if client.severity == "severe"]
    if severe:
        recommendations.append(
            f"URGENT: {', '.join(severe)} haven't been touched in 5+ days. "
            "Start with one small task for each."
        )

    critical = [client.name for client in stale_clients if client.severity == "critical"]
    if critical:
        recommendations.append(f"Touch {', '.join(critical)} today to prevent them from going stale.")

    if frequently_deferred:
        worst = frequently_deferred[0]
        for task in frequently_deferred[1:]:
            if task.defer_count > worst.defer_count:
                worst = task
        recommendations.append(
            f'"{worst.title}" has been deferred {worst.defer_count} times. '
            "Either do it now, break it down, or delete it."
        )

    for pattern in avoidance_patterns:
        if pattern.type == "client_concentration":
            recommendations.append(f"Try to spread work across more clients. {pattern.evidence}")
        elif pattern.type == "drain_avoidance":
            kinds = pattern.description.replace("Avoiding ", "").replace(" type work", "")
            recommendations.append(f"Mix in some {kinds} work to stay balanced.")
        elif pattern.type == "morning_avoidance":
            recommendations.append("Try completing one important task before noon tomorrow.")
        elif pattern.type == "afternoon_avoidance":
            recommendations.append("Save some easier tasks for the afternoon to maintain momentum.")

    if not recommendations:
        recommendations.append(NO_ISSUES_RECOMMENDATION)

    return recommendations


def build_avoidance_report(
    stale_clients: Sequence[StaleClient] = (),
    frequently_deferred: Sequence[DeferredTask] = (),
    avoidance_patterns: Sequence[AvoidancePattern] = (),
) -> AvoidanceReport:
    """Assemble a report with its overall score and recommendations."""
    score = (
        len(stale_clients) * STALE_CLIENT_WEIGHT
        + len(frequently_deferred) * DEFERRED_TASK_WEIGHT
        + len(avoidance_patterns) * PATTERN_WEIGHT
    )
    return AvoidanceReport(
        stale_clients=list(stale_clients),
        frequently_deferred=list(frequently_deferred),
        avoidance_patterns=list(avoidance_patterns),
        overall_score=min(100, score),
        recommendations=generate_recommendations(stale_clients, frequently_deferred, avoidance_patterns),
    )


def summarize_avoidance(report: AvoidanceReport) -> str:
    """
    Summarize a report in one paragraph for the chat context.

    Returns NO_ISSUES_SUMMARY when there is nothing to say.
    """
    parts = []

    if report.stale_clients:
        client_list = ", ".join(f"{c.name} ({c.days_since_touch}d)" for c in report.stale_clients)
        parts.append(f"Stale clients: {client_list}. ")

    if report.frequently_deferred:
        parts.append(f"{len(report.frequently_deferred)} tasks being repeatedly deferred. ")

    if report.avoidance_patterns:
        parts.append(f"Patterns: {'; '.join(p.description for p in report.avoidance_patterns)}. ")

    if report.recommendations:
        parts.append(f"Top recommendation: {report.recommendations[0]}")

    return "".join(parts) or NO_ISSUES_SUMMARY
