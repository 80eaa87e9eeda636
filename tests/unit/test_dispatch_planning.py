from __future__ import annotations

import datetime as dt

import pytest

from fieldplan.adapters.sources.sample import sample_jobs, sample_preferences
from fieldplan.domain.enums import JobClassification
from fieldplan.domain.exceptions import NoJobs
from fieldplan.domain.models import Coordinates, Job, UserPreferences
from fieldplan.domain.planning.dispatch import (
    build_dispatch,
    classify_job,
    rank_jobs,
    retime_schedule,
    score_job,
)

_HERE = Coordinates(latitude=37.77, longitude=-122.42)


def _job(job_id: str, **kwargs) -> Job:
    return Job(id=job_id, coordinates=_HERE, **kwargs)


def _at(planned_date: dt.date, hhmm: str) -> dt.datetime:
    return dt.datetime.combine(planned_date, dt.time.fromisoformat(hhmm))


def test_classify_by_configured_emergency_type():
    prefs = UserPreferences(emergency_job_types=["Gas_Leak"])
    classification, _ = classify_job(_job("a", job_type="gas_leak", priority="low"), prefs)
    assert classification == JobClassification.EMERGENCY


def test_classify_by_keyword_in_title_or_description():
    prefs = UserPreferences()
    assert classify_job(_job("a", title="Basement FLOOD"), prefs)[0] == JobClassification.EMERGENCY
    assert classify_job(_job("b", description="possible electrical fault"), prefs)[0] == JobClassification.EMERGENCY


def test_keyword_needs_word_start():
    prefs = UserPreferences()
    classification, _ = classify_job(_job("a", title="Degas the heating loop", priority="medium"), prefs)
    assert classification == JobClassification.MAINTENANCE


def test_classify_demand_and_maintenance_by_priority():
    prefs = UserPreferences()
    assert classify_job(_job("a", priority="urgent"), prefs)[0] == JobClassification.DEMAND
    assert classify_job(_job("b", priority="high"), prefs)[0] == JobClassification.DEMAND
    assert classify_job(_job("c", priority="medium"), prefs)[0] == JobClassification.MAINTENANCE


def test_score_weights():
    prefs = UserPreferences(vip_customer_ids=["vip"])
    scored = score_job(_job("a", title="gas smell", priority="urgent", customer_id="vip"), 0, prefs)
    assert scored.score == 1000 + 200 + 150
    assert scored.is_vip

    unknown = score_job(_job("b", priority="whenever"), 1, prefs)
    assert unknown.classification == JobClassification.MAINTENANCE
    assert unknown.score == 25


def test_rank_ties_keep_input_order():
    prefs = UserPreferences()
    jobs = [_job(f"j{i}", priority="medium") for i in range(5)]
    assert [s.job.id for s in rank_jobs(jobs, prefs)] == ["j0", "j1", "j2", "j3", "j4"]


@pytest.mark.parametrize("vip_ids", [[], ["maint-cust"], ["emerg-cust"], ["maint-cust", "emerg-cust"]])
def test_emergency_always_outranks_maintenance(vip_ids, planned_date):
    prefs = UserPreferences(vip_customer_ids=vip_ids)
    jobs = [
        _job("maint", priority="medium", customer_id="maint-cust", estimated_duration=30),
        _job("emerg", title="water leak", priority="low", customer_id="emerg-cust", estimated_duration=30),
    ]
    output = build_dispatch(jobs, prefs, planned_date)
    assert output.job_ids() == ["emerg", "maint"]


def test_three_job_day(planned_date):
    output = build_dispatch(sample_jobs(), sample_preferences(), planned_date)

    assert output.job_ids() == ["job-leak", "job-outlets", "job-boiler"]
    assert [j.priority_rank for j in output.prioritized_jobs] == [1, 2, 3]
    leak, outlets, boiler = output.prioritized_jobs
    assert leak.classification == JobClassification.EMERGENCY
    assert (leak.start_time, leak.end_time) == (_at(planned_date, "08:00"), _at(planned_date, "09:45"))
    # 10:00 + 135 min would run into lunch, so it moves to 13:00.
    assert (outlets.start_time, outlets.end_time) == (_at(planned_date, "13:00"), _at(planned_date, "15:15"))
    assert outlets.scheduling_notes.startswith("Scheduled after lunch break")
    assert (boiler.start_time, boiler.end_time) == (_at(planned_date, "15:30"), _at(planned_date, "16:45"))

    assert output.unscheduled_job_ids == []
    assert output.summary.emergency_jobs == 1
    assert output.summary.maintenance_jobs == 2
    assert output.summary.vip_clients == 1
    assert output.summary.schedule_efficiency == 100
    assert output.reasoning_source == "template"
    assert "DISPATCH ANALYSIS" in output.reasoning


def test_job_longer_than_the_day_is_excluded(planned_date):
    prefs = UserPreferences()
    jobs = [
        _job("marathon", priority="urgent", estimated_duration=480),
        _job("quick", priority="low", estimated_duration=30),
    ]
    output = build_dispatch(jobs, prefs, planned_date)

    assert output.job_ids() == ["quick"]
    assert output.prioritized_jobs[0].priority_rank == 1
    assert output.prioritized_jobs[0].start_time == _at(planned_date, "08:00")
    assert output.unscheduled_job_ids == ["marathon"]
    assert len(output.scheduling_constraints.schedule_conflicts) == 1
    assert output.summary.schedule_efficiency == 50
    assert any("cannot fit" in rec for rec in output.recommendations)


def test_ranks_stay_contiguous_when_middle_job_is_dropped(planned_date):
    prefs = UserPreferences()
    jobs = [
        _job("first", priority="urgent", estimated_duration=200),
        _job("too-long", priority="high", estimated_duration=400),
        _job("last", priority="low", estimated_duration=60),
    ]
    output = build_dispatch(jobs, prefs, planned_date)
    assert [(j.job_id, j.priority_rank) for j in output.prioritized_jobs] == [("first", 1), ("last", 2)]


def test_empty_job_list_is_rejected(planned_date):
    with pytest.raises(NoJobs):
        build_dispatch([], UserPreferences(), planned_date)


def test_invalid_preferences_rejected():
    with pytest.raises(ValueError):
        UserPreferences(work_start="17:00", work_end="08:00")
    with pytest.raises(ValueError):
        UserPreferences(lunch_start="13:00", lunch_end="12:00")
    with pytest.raises(ValueError):
        UserPreferences(work_start="8am")


def test_afternoon_shift_ignores_a_lunch_outside_working_hours(planned_date):
    prefs = UserPreferences(work_start="13:00", work_end="17:00")
    assert prefs.available_work_minutes == 240

    jobs = [_job("a", estimated_duration=60, priority="high"), _job("b", estimated_duration=60)]
    output = build_dispatch(jobs, prefs, planned_date)

    first, second = output.prioritized_jobs
    assert (first.start_time, first.end_time) == (_at(planned_date, "13:00"), _at(planned_date, "14:15"))
    assert (second.start_time, second.end_time) == (_at(planned_date, "14:30"), _at(planned_date, "15:45"))
    assert not any(item.scheduling_notes.startswith("Scheduled after lunch") for item in output.prioritized_jobs)
    assert output.unscheduled_job_ids == []


def test_lunch_window_is_clipped_to_the_work_window():
    prefs = UserPreferences(work_start="12:30", work_end="17:00")
    assert (prefs.lunch_start_minutes, prefs.lunch_end_minutes) == (12 * 60 + 30, 13 * 60)


def test_retime_follows_an_edited_order(planned_date):
    output = build_dispatch(sample_jobs(), sample_preferences(), planned_date)
    by_id = {item.job_id: item for item in output.prioritized_jobs}
    jobs = {job.id: job for job in sample_jobs()}
    edited = [by_id["job-boiler"], by_id["job-outlets"], by_id["job-leak"]]

    retimed = retime_schedule(edited, jobs, sample_preferences(), planned_date)

    assert [item.job_id for item in retimed] == ["job-boiler", "job-outlets", "job-leak"]
    assert [(f"{i.start_time:%H:%M}", f"{i.end_time:%H:%M}") for i in retimed] == [
        ("08:00", "09:15"),
        ("09:30", "11:45"),
        ("13:00", "14:45"),
    ]
    assert by_id["job-boiler"].start_time > by_id["job-leak"].start_time


def test_retime_keeps_the_original_placement_when_nothing_moved(planned_date):
    output = build_dispatch(sample_jobs(), sample_preferences(), planned_date)
    jobs = {job.id: job for job in sample_jobs()}
    retimed = retime_schedule(output.prioritized_jobs, jobs, sample_preferences(), planned_date)
    assert retimed == output.prioritized_jobs
