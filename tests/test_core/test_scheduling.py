from __future__ import annotations

from datetime import date

from experiment_tracker.core.scheduling import (
    build_schedule,
    check_conflicts,
    clamp_usage,
    intervals_overlap,
    parse_utilization,
    resource_availability,
    summarize_resource_availability,
)


def _experiment(exp_id: str, start: str | None, end: str | None, utilization=None, **extra):
    row = {
        "id": exp_id,
        "name": f"Experiment {exp_id}",
        "researcher": "Ada Lovelace",
        "status": "planned",
        "assignedResource": "gpu-1",
        "startDate": start,
        "endDate": end,
        "resourceUtilization": utilization,
        "createdAt": "2025-01-01T00:00:00+00:00",
    }
    row.update(extra)
    return row


def test_overlap_is_symmetric_for_bounded_intervals():
    pairs = [
        ((date(2025, 3, 1), date(2025, 3, 5)), (date(2025, 3, 5), date(2025, 3, 9))),
        ((date(2025, 3, 1), date(2025, 3, 31)), (date(2025, 3, 10), date(2025, 3, 12))),
        ((date(2025, 3, 1), date(2025, 3, 2)), (date(2025, 3, 3), date(2025, 3, 4))),
        ((date(2025, 3, 7), date(2025, 3, 7)), (date(2025, 3, 7), date(2025, 3, 7))),
    ]
    for (a_start, a_end), (b_start, b_end) in pairs:
        assert intervals_overlap(a_start, a_end, b_start, b_end) == intervals_overlap(b_start, b_end, a_start, a_end)


def test_overlap_bounds_are_inclusive():
    assert intervals_overlap(date(2025, 3, 1), date(2025, 3, 5), date(2025, 3, 5), date(2025, 3, 8))
    assert intervals_overlap(date(2025, 3, 5), date(2025, 3, 8), date(2025, 3, 1), date(2025, 3, 5))
    assert not intervals_overlap(date(2025, 3, 1), date(2025, 3, 4), date(2025, 3, 5), date(2025, 3, 8))


def test_overlap_with_open_ended_experiment_uses_known_bound():
    window = (date(2025, 3, 1), date(2025, 3, 10))
    assert intervals_overlap(*window, date(2025, 3, 4), None)
    assert not intervals_overlap(*window, date(2025, 2, 1), None)
    assert intervals_overlap(*window, None, date(2025, 3, 2))


def test_same_day_booking_exceeds_limit():
    existing = [_experiment("exp_1", "2025-04-10", "2025-04-10", 60)]
    report = check_conflicts(date(2025, 4, 10), date(2025, 4, 10), 50, existing)
    payload = report.to_payload()
    assert payload["hasConflicts"] is True
    assert payload["totalUtilization"] == 110
    assert payload["utilizationOverLimit"] is True
    assert payload["recommendations"]["canProceed"] is False
    assert payload["conflictingExperiments"][0]["id"] == "exp_1"


def test_total_is_candidate_plus_every_match_at_full_value():
    existing = [
        _experiment("exp_1", "2025-04-01", "2025-04-30", 20),
        _experiment("exp_2", "2025-04-29", "2025-05-03", 30),
        _experiment("exp_3", "2025-05-10", "2025-05-12", 90),
    ]
    report = check_conflicts(date(2025, 4, 28), date(2025, 5, 1), 40, existing)
    assert [row["id"] for row in report.conflicts] == ["exp_1", "exp_2"]
    assert report.total_utilization == 90
    assert report.utilization_over_limit is False
    assert report.recommendations()["canProceed"] is True
    assert report.recommendations()["warning"]


def test_exactly_at_limit_is_not_over():
    existing = [_experiment("exp_1", "2025-04-10", "2025-04-12", 50)]
    report = check_conflicts(date(2025, 4, 11), date(2025, 4, 11), 50, existing)
    assert report.total_utilization == 100
    assert report.utilization_over_limit is False


def test_excluded_experiment_is_ignored():
    existing = [_experiment("exp_1", "2025-04-10", "2025-04-12", 80)]
    report = check_conflicts(date(2025, 4, 10), date(2025, 4, 12), 80, existing, exclude_experiment_id="exp_1")
    assert report.has_conflicts is False
    assert report.total_utilization == 80
    assert report.recommendations()["suggestion"] == "No conflicts detected - safe to proceed"


def test_missing_candidate_utilization_counts_as_zero():
    existing = [_experiment("exp_1", "2025-04-10", "2025-04-12", 70)]
    report = check_conflicts(date(2025, 4, 10), date(2025, 4, 12), None, existing)
    assert report.total_utilization == 70
    assert report.has_conflicts is True


def test_parse_utilization_tolerates_blank_and_text():
    assert parse_utilization(None) == 0
    assert parse_utilization("") == 0
    assert parse_utilization("45") == 45
    assert parse_utilization("n/a") == 0


def test_clamp_usage_bounds():
    assert clamp_usage(-5) == 0
    assert clamp_usage(40) == 40
    assert clamp_usage(250) == 100


def test_resource_availability_clamps_but_reports_raw_sum():
    resource = {"id": "res_1", "resourceId": "gpu-1", "name": "GPU 1", "status": "maintenance"}
    experiments = [
        _experiment("exp_1", "2025-04-01", "2025-04-05", 70, status="in-progress"),
        _experiment("exp_2", "2025-04-03", "2025-04-09", 60),
        _experiment("exp_3", "2025-04-03", "2025-04-09", 90, status="completed"),
        _experiment("exp_4", None, None, 90),
    ]
    row = resource_availability(resource, experiments)
    assert row["calculatedUsage"] == 100
    assert row["rawUtilization"] == 130
    assert row["availableCapacity"] == 0
    assert row["calculatedStatus"] == "active"
    assert row["activeExperiments"] == 2
    assert row["status"] == "maintenance"


def test_summary_counts_over_allocated_resources():
    resources = [
        {"id": "res_1", "resourceId": "gpu-1", "name": "GPU 1"},
        {"id": "res_2", "resourceId": "gpu-2", "name": "GPU 2"},
    ]
    experiments = [
        _experiment("exp_1", "2025-04-01", "2025-04-05", 70),
        _experiment("exp_2", "2025-04-01", "2025-04-05", 70),
    ]
    result = summarize_resource_availability(resources, experiments)
    assert result["summary"] == {"total": 2, "active": 1, "idle": 1, "overAllocated": 1}
    idle = next(row for row in result["resources"] if row["resourceId"] == "gpu-2")
    assert idle["calculatedUsage"] == 0
    assert idle["calculatedStatus"] == "idle"
    assert idle["availableCapacity"] == 100


def test_build_schedule_filters_window_and_groups_by_start_date():
    experiments = [
        _experiment("exp_1", "2025-06-02", "2025-06-04", 10),
        _experiment("exp_2", "2025-05-20", "2025-06-01", 10, status="in-progress"),
        _experiment("exp_3", "2025-06-02", None, 10, assignedResource="gpu-2"),
        _experiment("exp_4", "2025-07-01", "2025-07-02", 10),
    ]
    schedule = build_schedule(experiments, date(2025, 6, 1), date(2025, 6, 7))
    assert [exp["id"] for exp in schedule["experiments"]] == ["exp_2", "exp_1", "exp_3"]
    assert sorted(schedule["experimentsByDate"]) == ["2025-05-20", "2025-06-02"]
    assert len(schedule["experimentsByDate"]["2025-06-02"]) == 2
    assert schedule["summary"]["total"] == 3
    assert schedule["summary"]["byStatus"] == {"in-progress": 1, "planned": 2}
    assert schedule["summary"]["byResource"] == {"gpu-1": 2, "gpu-2": 1}
