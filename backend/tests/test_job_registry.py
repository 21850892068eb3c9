"""
Job registry tests: creation, timers, derived completion, cutlists and
dashboard statistics.
"""

from datetime import datetime, timedelta

import pytest

from cutshop.errors import InvalidArgumentError, NotFoundError
from cutshop.jobs import InvalidStateTransitionError, JobStatus


class TestCreateJob:

    def test_creates_first_cutlist_with_materials(self, job_registry, color):
        job = job_registry.create_job("Acme", "Vanity", [(color.id, 4), (color.id, 2)])

        assert job.status == JobStatus.WAITING
        assert [c.name for c in job.cutlists] == ["Cutlist 1"]
        assert [m.total_sheets for m in job.materials] == [4, 2]
        assert all(m.sheet_statuses == ["pending"] * m.total_sheets for m in job.materials)
        assert job.total_sheets == 6

    def test_requires_a_material(self, job_registry):
        with pytest.raises(InvalidArgumentError):
            job_registry.create_job("Acme", "Vanity", [])

    def test_requires_positive_sheet_count(self, job_registry, color):
        with pytest.raises(InvalidArgumentError):
            job_registry.create_job("Acme", "Vanity", [(color.id, 0)])

    def test_unknown_color(self, job_registry):
        with pytest.raises(NotFoundError):
            job_registry.create_job("Acme", "Vanity", [(77, 1)])

    def test_blank_names(self, job_registry, color):
        with pytest.raises(InvalidArgumentError):
            job_registry.create_job("  ", "Vanity", [(color.id, 1)])


class TestListJobs:

    def test_newest_first_with_filters(self, job_registry, color):
        first = job_registry.create_job("Acme", "Vanity", [(color.id, 1)])
        second = job_registry.create_job("Birch & Co", "Wardrobe", [(color.id, 1)])
        job_registry.pause_job(job_registry.start_timer(second.id).id)

        assert [j.id for j in job_registry.list_jobs()] == [second.id, first.id]
        assert [j.id for j in job_registry.list_jobs(search="birch")] == [second.id]
        assert [j.id for j in job_registry.list_jobs(status="paused")] == [second.id]

    def test_unknown_status_filter(self, job_registry):
        with pytest.raises(InvalidArgumentError):
            job_registry.list_jobs(status="archived")


class TestTimers:

    def test_start_stop_accumulates(self, job_registry, job):
        started = job_registry.start_timer(job.id, user_id=None)
        assert started.status == JobStatus.IN_PROGRESS
        assert started.start_time is not None
        assert len(started.time_logs) == 1

        stopped = job_registry.stop_timer(job.id)
        assert stopped.time_logs[0].end_time is not None
        assert stopped.total_duration is not None

    def test_sub_second_logs_add_up(self, job_registry, persistence, job):
        """
        GIVEN: Three closed time logs of about 0.6 s each
        WHEN: The timer is stopped after each one
        THEN: The job total is the rounded sum, not the sum of truncated logs
        """
        for _ in range(3):
            started = datetime.now() - timedelta(seconds=0.6)
            persistence.insert_time_log(job.id, started.isoformat())
            stopped = job_registry.stop_timer(job.id)

        assert stopped.total_duration == 2
        assert all(log.end_time is not None for log in stopped.time_logs)

    def test_short_run_records_zero(self, job_registry, job):
        job_registry.start_timer(job.id)
        stopped = job_registry.stop_timer(job.id)
        assert stopped.total_duration == 0

    def test_stop_without_open_log_leaves_total(self, job_registry, job):
        assert job_registry.stop_timer(job.id).total_duration is None

    def test_start_twice_keeps_one_open_log(self, job_registry, job):
        job_registry.start_timer(job.id)
        again = job_registry.start_timer(job.id)
        assert len(again.time_logs) == 1

    def test_pause_and_resume(self, job_registry, job):
        job_registry.start_timer(job.id)
        paused = job_registry.pause_job(job.id)
        assert paused.status == JobStatus.PAUSED
        assert all(log.end_time is not None for log in paused.time_logs)

        resumed = job_registry.resume_job(job.id)
        assert resumed.status == JobStatus.IN_PROGRESS
        assert sum(1 for log in resumed.time_logs if log.end_time is None) == 1

    def test_resume_requires_paused(self, job_registry, job):
        with pytest.raises(InvalidStateTransitionError):
            job_registry.resume_job(job.id)


class TestCompletion:

    def test_done_when_no_sheet_pending(self, job_registry, store, job, material):
        for index in range(6):
            store.set_sheet_status(material.id, index, "cut" if index % 2 else "skip")

        changed = job_registry.sync_completion(job.id)

        assert changed is not None
        assert changed.status == JobStatus.DONE
        assert changed.end_time is not None

    def test_unchanged_returns_none(self, job_registry, job):
        assert job_registry.sync_completion(job.id) is None

    def test_pending_recut_reopens_done_job(self, job_registry, store, job, material):
        for index in range(6):
            store.set_sheet_status(material.id, index, "cut")
        job_registry.sync_completion(job.id)

        store.add_recut_entry(material.id, 1)
        reopened = job_registry.sync_completion_for_material(material.id)

        assert reopened.status == JobStatus.IN_PROGRESS
        assert reopened.end_time is None


class TestCutlistsAndMaterials:

    def test_create_cutlists_numbers_sequentially(self, job_registry, job):
        created = job_registry.create_cutlists(job.id, 2)
        assert [c.name for c in created] == ["Cutlist 2", "Cutlist 3"]

    def test_add_material_to_named_cutlist(self, job_registry, job, color):
        cutlist = job_registry.create_cutlists(job.id, 1)[0]
        material = job_registry.add_material(job.id, color.id, 3, cutlist_id=cutlist.id)
        assert material.cutlist_id == cutlist.id
        assert material.job_id == job.id
        assert material.sheet_statuses == ["pending"] * 3

    def test_add_material_to_foreign_cutlist(self, job_registry, job, color):
        other = job_registry.create_job("Other", "Job", [(color.id, 1)])
        with pytest.raises(NotFoundError):
            job_registry.add_material(job.id, color.id, 1, cutlist_id=other.cutlists[0].id)

    def test_delete_material_returns_job(self, job_registry, job, material):
        assert job_registry.delete_material(material.id) == job.id
        with pytest.raises(NotFoundError):
            job_registry.delete_material(material.id)


class TestDashboardStats:

    def test_counts_sheets_and_jobs(self, job_registry, store, job, material):
        store.set_sheet_status(material.id, 0, "cut")
        store.set_sheet_status(material.id, 1, "skip")
        store.add_recut_entry(material.id, 2)
        job_registry.start_timer(job.id)

        stats = job_registry.dashboard_stats()

        assert stats.total_jobs == 1
        assert stats.in_progress_jobs == 1
        assert stats.total_sheets == 6
        assert stats.cut_sheets == 1
        assert stats.skipped_sheets == 1
        assert stats.pending_sheets == 4
        assert stats.recut_sheets == 2
        assert stats.logged_jobs == 1

    def test_sheet_window_excludes_other_days(self, job_registry, job):
        stats = job_registry.dashboard_stats(sheets_from="2000-01-01", sheets_to="2000-01-02")
        assert stats.total_jobs == 1
        assert stats.total_sheets == 0

    def test_timestamp_upper_bound_is_inclusive(self, job_registry, job):
        created = job.created_at.isoformat()

        stats = job_registry.dashboard_stats(sheets_from=created, sheets_to=created)

        assert stats.total_sheets == 6

    def test_time_window_includes_exact_start(self, job_registry, job):
        started = job_registry.start_timer(job.id).time_logs[0].start_time.isoformat()

        stats = job_registry.dashboard_stats(time_from=started, time_to=started)

        assert stats.logged_jobs == 1

    def test_invalid_date(self, job_registry):
        with pytest.raises(InvalidArgumentError):
            job_registry.dashboard_stats(time_from="last week")
