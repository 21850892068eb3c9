"""
Client tests: the HTTP client, the job view session wired to the
reconciler, and periodic refresh. The API client runs against the app
through TestClient.
"""

import threading

import pytest
import requests

from cutshop.client import (
    CutshopClient,
    CutshopClientError,
    JobViewSession,
    OptimisticReconciler,
    PeriodicRefresher,
    RollbackPolicy,
    job_detail_refresher,
)
from cutshop.sheets import EntityKind, SheetStatus

P, C, S = SheetStatus.PENDING, SheetStatus.CUT, SheetStatus.SKIP
M, R = EntityKind.MATERIAL, EntityKind.RECUT


def material_of(job_body):
    return job_body["cutlists"][0]["materials"][0]


@pytest.fixture
def api(admin_client):
    return CutshopClient(base_url="http://testserver", session=admin_client, timeout=None)


@pytest.fixture
def errors():
    return []


@pytest.fixture
def view(api, api_job, errors):
    reconciler = OptimisticReconciler(on_error=lambda update, message: errors.append(message))
    session = JobViewSession(api, api_job["id"], reconciler=reconciler)
    session.refresh()
    return session


class TestCutshopClient:

    def test_error_carries_code_and_status(self, client):
        api = CutshopClient(base_url="http://testserver", session=client, timeout=None)
        with pytest.raises(CutshopClientError) as exc:
            api.list_jobs()
        assert exc.value.status_code == 401
        assert exc.value.code == "UNAUTHORIZED"

    def test_transport_failure(self):
        class DeadSession:
            def request(self, *args, **kwargs):
                raise requests.ConnectionError("connection refused")

        api = CutshopClient(session=DeadSession())
        with pytest.raises(CutshopClientError) as exc:
            api.get_job(1)
        assert exc.value.status_code == 0
        assert exc.value.code == "NETWORK_ERROR"

    @pytest.mark.parametrize("timeout, expected", [(2.5, {"timeout": 2.5}), (None, {})])
    def test_timeout_passed_only_when_set(self, timeout, expected):
        calls = []

        class RecordingSession:
            def request(self, method, url, **kwargs):
                calls.append(kwargs)
                raise requests.ConnectionError("offline")

        api = CutshopClient(session=RecordingSession(), timeout=timeout)
        with pytest.raises(CutshopClientError):
            api.me()
        assert calls == [expected]

    def test_models_parsed(self, api, api_job):
        job = api.get_job(api_job["id"])
        assert job.job_number == api_job["jobNumber"]
        assert job.materials[0].sheet_statuses == [P] * 6

    def test_add_sheets_and_recut(self, api, api_job):
        material_id = material_of(api_job)["id"]
        assert api.add_sheets(material_id, 2).total_sheets == 8
        recut = api.add_recut(material_id, 1, reason="Scratched")
        assert api.set_recut_sheet_status(recut.id, 0, S).sheet_statuses == [S]


class TestJobViewSession:

    def test_refresh_feeds_snapshots(self, view, api_job):
        material_id = material_of(api_job)["id"]
        assert view.material_ids == {material_id}
        assert view.reconciler.displayed_statuses(M, material_id) == [P] * 6

    def test_click_reaches_server(self, view, api, api_job):
        material_id = material_of(api_job)["id"]
        update = view.click_sheet(material_id, 2)

        assert update.target == C
        assert view.reconciler.displayed_status(M, material_id, 2) == C
        assert api.get_job(api_job["id"]).materials[0].sheet_statuses[2] == C

    def test_three_clicks_cycle_back(self, view, api, api_job):
        material_id = material_of(api_job)["id"]
        for _ in range(3):
            view.click_sheet(material_id, 0)
        view.refresh()
        assert view.reconciler.displayed_status(M, material_id, 0) == P

    def test_rejected_click_rolls_back(self, view, api_job, errors):
        material_id = material_of(api_job)["id"]
        view.click_sheet(material_id, 6)  # out of range on the server

        assert view.reconciler.displayed_status(M, material_id, 6) == P
        assert not view.reconciler.has_optimistic(M, material_id, 6)
        assert len(errors) == 1
        assert "out of range" in errors[0]

    def test_server_policy_refreshes_after_failure(self, api, api_job, errors):
        reconciler = OptimisticReconciler(
            on_error=lambda update, message: errors.append(message), policy=RollbackPolicy.SERVER
        )
        session = JobViewSession(api, api_job["id"], reconciler=reconciler)
        session.refresh()
        material_id = material_of(api_job)["id"]

        api.set_sheet_status(material_id, 1, "skip")  # another operator
        session.click_sheet(10_000, 0)  # unknown material

        assert errors and "not found" in errors[0].lower()
        assert reconciler.displayed_status(M, material_id, 1) == S

    def test_recut_click(self, view, api, api_job):
        material_id = material_of(api_job)["id"]
        recut = api.add_recut(material_id, 2)
        view.refresh_recuts(material_id)

        view.click_recut_sheet(recut.id, 1)
        assert view.reconciler.displayed_statuses(R, recut.id) == [P, C]


class TestEventHandling:

    def test_event_for_open_material_refreshes(self, view, api, api_job):
        material_id = material_of(api_job)["id"]
        api.set_sheet_status(material_id, 4, "cut")

        handled = view.handle_event({
            "type": "sheet_status_updated",
            "data": {"materialId": material_id, "sheetIndex": 4, "status": "cut"},
        })

        assert handled
        assert view.reconciler.displayed_status(M, material_id, 4) == C

    def test_event_for_other_material_ignored(self, view):
        handled = view.handle_event({
            "type": "sheet_status_updated",
            "data": {"materialId": 987654, "sheetIndex": 0, "status": "cut"},
        })
        assert not handled

    def test_recut_event_matched_by_material(self, view, api, api_job):
        material_id = material_of(api_job)["id"]
        recut = api.add_recut(material_id, 1)
        assert view.handle_event({"type": "recut_added", "data": {"materialId": material_id, "recutId": recut.id}})
        assert recut.id in view.recut_ids

    def test_material_deleted_forgets_its_sheets(self, view, api, api_job):
        material_id = material_of(api_job)["id"]
        view.click_sheet(material_id, 0)
        api.delete_material(material_id)

        handled = view.handle_event({
            "type": "material_deleted",
            "data": {"materialId": material_id, "jobId": api_job["id"]},
        })

        assert handled
        assert material_id not in view.material_ids
        assert view.reconciler.server_status(M, material_id, 0) is None
        assert not view.reconciler.has_optimistic(M, material_id, 0)
        assert view.reconciler.displayed_statuses(M, material_id) == []

    def test_recut_deleted_forgets_the_recut(self, view, api, api_job):
        material_id = material_of(api_job)["id"]
        recut = api.add_recut(material_id, 2)
        view.refresh()
        view.click_recut_sheet(recut.id, 1)
        api.delete_recut(recut.id)

        assert view.handle_event({
            "type": "recut_deleted",
            "data": {"recutId": recut.id, "materialId": material_id},
        })

        assert recut.id not in view.recut_ids
        assert not view.reconciler.has_optimistic(R, recut.id, 1)
        assert view.reconciler.displayed_statuses(R, recut.id) == []

    def test_refresh_forgets_entities_gone_from_job(self, view, api, api_job):
        """
        GIVEN: A view holding snapshots for a material and its recut
        WHEN: The material is deleted and the view refreshes without an event
        THEN: Both entities are dropped from the reconciler
        """
        material_id = material_of(api_job)["id"]
        recut = api.add_recut(material_id, 1)
        view.refresh()
        assert view.reconciler.displayed_statuses(R, recut.id) == [P]

        api.delete_material(material_id)
        view.refresh()

        assert view.reconciler.displayed_statuses(M, material_id) == []
        assert view.reconciler.displayed_statuses(R, recut.id) == []

    def test_job_deleted(self, view, api_job):
        assert not view.handle_event({"type": "job_deleted", "data": {"jobId": api_job["id"]}})
        assert view.deleted
        assert view.job is None
        assert view.reconciler.displayed_statuses(M, material_of(api_job)["id"]) == []

    def test_unknown_event_type(self, view):
        assert not view.handle_event({"type": "something_else", "data": {}})


class TestPeriodicRefresher:

    def test_tick_counts_failures(self):
        def refresh():
            raise CutshopClientError(503, "STORAGE_FAILURE", "database locked")

        refresher = PeriodicRefresher(refresh, interval=60)
        assert not refresher.tick()
        assert (refresher.ticks, refresher.failures) == (1, 1)

    def test_runs_until_stopped(self):
        called = threading.Event()
        refresher = PeriodicRefresher(called.set, interval=0.01, name="test")

        refresher.start()
        try:
            assert called.wait(2.0)
        finally:
            refresher.stop(timeout=2.0)
        assert not refresher.running

    def test_invalid_interval(self):
        with pytest.raises(ValueError):
            PeriodicRefresher(lambda: None, interval=0)

    def test_job_detail_default_interval(self, view):
        refresher = job_detail_refresher(view)
        assert refresher.interval == 5.0
        assert refresher.tick()
