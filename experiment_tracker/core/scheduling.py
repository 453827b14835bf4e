"""Calendar overlap queries and resource utilization arithmetic.

Experiments are handled here as the decoded dictionaries returned by
``ExperimentRepository`` (camelCase keys, ISO ``YYYY-MM-DD`` dates). All
bounds are inclusive, and an overlapping experiment always counts at its
full stated utilization: there is no proration by overlap length.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable

from experiment_tracker.core.constants import ACTIVE_STATUSES

DEFAULT_UTILIZATION_LIMIT = 100


def parse_day(value: Any) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def parse_utilization(value: Any) -> int:
    """Utilization as an integer percent; blanks and junk count as 0."""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    try:
        return int(float(str(value).strip()))
    except ValueError:
        return 0


def intervals_overlap(window_start: date, window_end: date, start: date | None, end: date | None) -> bool:
    """True when ``[start, end]`` touches the window.

    Matches when the start falls inside the window, when the end falls inside
    the window, or when the interval spans the whole window. A missing bound
    only takes part through the bound that is known.
    """
    if start is not None and window_start <= start <= window_end:
        return True
    if end is not None and window_start <= end <= window_end:
        return True
    if start is not None and end is not None and start <= window_start and end >= window_end:
        return True
    return False


def experiment_overlaps(window_start: date, window_end: date, experiment: dict[str, Any]) -> bool:
    return intervals_overlap(
        window_start,
        window_end,
        parse_day(experiment.get("startDate")),
        parse_day(experiment.get("endDate")),
    )


@dataclass
class ConflictReport:
    conflicts: list[dict[str, Any]] = field(default_factory=list)
    total_utilization: int = 0
    limit: int = DEFAULT_UTILIZATION_LIMIT

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)

    @property
    def utilization_over_limit(self) -> bool:
        return self.total_utilization > self.limit

    def recommendations(self) -> dict[str, Any]:
        if self.utilization_over_limit:
            suggestion = "Consider reducing resource utilization or choosing a different time slot"
        elif self.has_conflicts:
            suggestion = "Review conflicting experiments and their resource requirements"
        else:
            suggestion = "No conflicts detected - safe to proceed"
        return {
            "canProceed": not self.utilization_over_limit,
            "warning": "Resource is already allocated during this time period" if self.has_conflicts else None,
            "suggestion": suggestion,
        }

    def to_payload(self) -> dict[str, Any]:
        return {
            "hasConflicts": self.has_conflicts,
            "utilizationOverLimit": self.utilization_over_limit,
            "totalUtilization": self.total_utilization,
            "utilizationLimit": self.limit,
            "conflictingExperiments": self.conflicts,
            "recommendations": self.recommendations(),
        }


def check_conflicts(
    start: date,
    end: date,
    utilization: int | None,
    candidates: Iterable[dict[str, Any]],
    exclude_experiment_id: str | None = None,
    limit: int = DEFAULT_UTILIZATION_LIMIT,
) -> ConflictReport:
    """Find booked experiments overlapping ``[start, end]`` and sum utilization.

    ``candidates`` must already be restricted to the resource being booked.
    """
    report = ConflictReport(total_utilization=parse_utilization(utilization), limit=limit)
    for experiment in candidates:
        if exclude_experiment_id and experiment.get("id") == exclude_experiment_id:
            continue
        if not experiment_overlaps(start, end, experiment):
            continue
        booked = parse_utilization(experiment.get("resourceUtilization"))
        report.total_utilization += booked
        report.conflicts.append(
            {
                "id": experiment.get("id"),
                "name": experiment.get("name"),
                "researcher": experiment.get("researcher"),
                "startDate": experiment.get("startDate"),
                "endDate": experiment.get("endDate"),
                "status": experiment.get("status"),
                "resourceUtilization": booked,
            }
        )
    return report


def clamp_usage(value: int, lower: int = 0, upper: int = DEFAULT_UTILIZATION_LIMIT) -> int:
    return max(lower, min(int(value), upper))


def resource_availability(
    resource: dict[str, Any],
    experiments: Iterable[dict[str, Any]],
    limit: int = DEFAULT_UTILIZATION_LIMIT,
) -> dict[str, Any]:
    # Status derives from booked usage, not from the stored resource status.
    active = [
        exp
        for exp in experiments
        if exp.get("assignedResource") == resource.get("resourceId")
        and exp.get("status") in ACTIVE_STATUSES
        and exp.get("startDate")
    ]
    raw_usage = sum(parse_utilization(exp.get("resourceUtilization")) for exp in active)
    return {
        **resource,
        "calculatedUsage": clamp_usage(raw_usage, 0, limit),
        "calculatedStatus": "active" if raw_usage > 0 else "idle",
        "rawUtilization": raw_usage,
        "availableCapacity": max(0, limit - raw_usage),
        "activeExperiments": len(active),
        "experiments": [
            {
                "id": exp.get("id"),
                "name": exp.get("name"),
                "resourceUtilization": parse_utilization(exp.get("resourceUtilization")),
                "startDate": exp.get("startDate"),
                "endDate": exp.get("endDate"),
                "status": exp.get("status"),
            }
            for exp in active
        ],
    }


def summarize_resource_availability(
    resources: Iterable[dict[str, Any]],
    experiments: Iterable[dict[str, Any]],
    limit: int = DEFAULT_UTILIZATION_LIMIT,
) -> dict[str, Any]:
    experiments = list(experiments)
    rows = [resource_availability(resource, experiments, limit=limit) for resource in resources]
    return {
        "resources": rows,
        "summary": {
            "total": len(rows),
            "active": sum(1 for row in rows if row["calculatedUsage"] > 0),
            "idle": sum(1 for row in rows if row["calculatedUsage"] == 0),
            "overAllocated": sum(1 for row in rows if row["rawUtilization"] > limit),
        },
    }


def build_schedule(
    experiments: Iterable[dict[str, Any]],
    window_start: date | None = None,
    window_end: date | None = None,
) -> dict[str, Any]:
    scheduled = [exp for exp in experiments if exp.get("startDate") or exp.get("endDate")]
    if window_start is not None and window_end is not None:
        scheduled = [exp for exp in scheduled if experiment_overlaps(window_start, window_end, exp)]
    scheduled.sort(key=lambda exp: (exp.get("startDate") or "9999-12-31", exp.get("createdAt") or ""))

    by_date: dict[str, list[dict[str, Any]]] = {}
    for exp in scheduled:
        if exp.get("startDate"):
            by_date.setdefault(exp["startDate"], []).append(exp)

    return {
        "experiments": scheduled,
        "experimentsByDate": by_date,
        "summary": {
            "total": len(scheduled),
            "byStatus": dict(Counter(exp.get("status") for exp in scheduled)),
            "byResource": dict(Counter(exp["assignedResource"] for exp in scheduled if exp.get("assignedResource"))),
        },
    }
