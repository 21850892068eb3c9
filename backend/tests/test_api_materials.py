"""
Material, sheet and recut endpoint tests, including the broadcast each
mutation sends to connected viewers.
"""

import pytest


@pytest.fixture
def material_id(api_job):
    return api_job["cutlists"][0]["materials"][0]["id"]


def get_material(client, job_id):
    return client.get(f"/api/jobs/{job_id}").json()["cutlists"][0]["materials"][0]


class TestSheetStatus:

    def test_put_sheet_status(self, admin_client, api_job, material_id):
        response = admin_client.put(
            f"/api/materials/{material_id}/sheet-status", json={"sheetIndex": 2, "status": "cut"}
        )
        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Sheet status updated"
        assert body["material"]["sheetStatuses"] == ["pending", "pending", "cut", "pending", "pending", "pending"]
        assert body["material"]["completedSheets"] == 1

    def test_post_sheet_by_path_index(self, admin_client, api_job, material_id):
        response = admin_client.post(f"/api/materials/{material_id}/sheets/5", json={"status": "skip"})
        assert response.status_code == 200
        assert get_material(admin_client, api_job["id"])["sheetStatuses"][5] == "skip"

    def test_invalid_status(self, admin_client, material_id):
        response = admin_client.put(
            f"/api/materials/{material_id}/sheet-status", json={"sheetIndex": 0, "status": "done"}
        )
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_ARGUMENT"

    def test_out_of_range(self, admin_client, material_id):
        response = admin_client.put(
            f"/api/materials/{material_id}/sheet-status", json={"sheetIndex": 6, "status": "cut"}
        )
        assert response.status_code == 400
        assert response.json()["code"] == "OUT_OF_RANGE"

    @pytest.mark.parametrize("index", [True, "1", 1.0])
    def test_sheet_index_must_be_a_json_integer(self, admin_client, api_job, material_id, index):
        response = admin_client.put(
            f"/api/materials/{material_id}/sheet-status", json={"sheetIndex": index, "status": "cut"}
        )
        assert response.status_code == 422
        assert get_material(admin_client, api_job["id"])["sheetStatuses"] == ["pending"] * 6

    def test_unknown_material(self, admin_client):
        response = admin_client.post("/api/materials/999/sheets/0", json={"status": "cut"})
        assert response.status_code == 404

    def test_all_sheets_done_completes_job(self, admin_client, api_job, material_id):
        for index in range(6):
            admin_client.post(f"/api/materials/{material_id}/sheets/{index}", json={"status": "cut"})
        job = admin_client.get(f"/api/jobs/{api_job['id']}").json()
        assert job["status"] == "done"
        assert job["endTime"] is not None


class TestResizing:

    def test_add_sheets(self, admin_client, material_id):
        response = admin_client.post(f"/api/materials/{material_id}/add-sheets", json={"additionalSheets": 3})
        material = response.json()["material"]
        assert material["totalSheets"] == 9
        assert material["sheetStatuses"][6:] == ["pending"] * 3

    def test_add_sheets_as_recut(self, admin_client, material_id):
        response = admin_client.post(
            f"/api/materials/{material_id}/add-sheets", json={"additionalSheets": 2, "isRecut": True}
        )
        material = response.json()["material"]
        assert material["totalSheets"] == 6
        assert [r["quantity"] for r in material["recutEntries"]] == [2]

    @pytest.mark.parametrize("count", [0, -4])
    def test_add_sheets_rejects_non_positive(self, admin_client, material_id, count):
        response = admin_client.post(f"/api/materials/{material_id}/add-sheets", json={"additionalSheets": count})
        assert response.status_code == 400

    def test_delete_sheet(self, admin_client, material_id):
        admin_client.put(f"/api/materials/{material_id}/sheet-status", json={"sheetIndex": 3, "status": "cut"})
        response = admin_client.delete(f"/api/materials/{material_id}/sheet/2")
        material = response.json()["material"]
        assert material["totalSheets"] == 5
        assert material["sheetStatuses"] == ["pending", "pending", "cut", "pending", "pending"]

    def test_progress_endpoint(self, admin_client, material_id):
        response = admin_client.put(f"/api/materials/{material_id}/progress", json={"completedSheets": 2})
        material = response.json()["material"]
        assert material["completedSheets"] == 2
        assert material["sheetStatuses"].count("cut") == 2

    def test_delete_material(self, admin_client, api_job, material_id):
        assert admin_client.delete(f"/api/materials/{material_id}").status_code == 200
        assert admin_client.get(f"/api/jobs/{api_job['id']}").json()["cutlists"][0]["materials"] == []


class TestRecutEndpoints:

    def test_add_list_update_delete(self, admin_client, material_id):
        created = admin_client.post(
            f"/api/materials/{material_id}/recuts", json={"quantity": 2, "reason": "Wrong edge banding"}
        ).json()["recut"]
        assert created["sheetStatuses"] == ["pending", "pending"]

        listed = admin_client.get(f"/api/materials/{material_id}/recuts").json()
        assert [r["id"] for r in listed] == [created["id"]]
        assert listed[0]["reason"] == "Wrong edge banding"

        updated = admin_client.put(
            f"/api/recuts/{created['id']}/sheet-status", json={"sheetIndex": 1, "status": "cut"}
        ).json()["recut"]
        assert updated["sheetStatuses"] == ["pending", "cut"]
        assert updated["completedSheets"] == 1

        assert admin_client.delete(f"/api/recuts/{created['id']}").status_code == 200
        assert admin_client.get(f"/api/materials/{material_id}/recuts").json() == []

    def test_recut_index_bounded_by_quantity(self, admin_client, material_id):
        recut = admin_client.post(f"/api/materials/{material_id}/recuts", json={"quantity": 1}).json()["recut"]
        response = admin_client.put(f"/api/recuts/{recut['id']}/sheet-status", json={"sheetIndex": 1, "status": "cut"})
        assert response.status_code == 400
        assert response.json()["code"] == "OUT_OF_RANGE"

    def test_invalid_quantity(self, admin_client, material_id):
        assert admin_client.post(f"/api/materials/{material_id}/recuts", json={"quantity": 0}).status_code == 400

    def test_recut_sheet_index_rejects_boolean(self, admin_client, material_id):
        recut = admin_client.post(f"/api/materials/{material_id}/recuts", json={"quantity": 2}).json()["recut"]
        response = admin_client.put(f"/api/recuts/{recut['id']}/sheet-status", json={"sheetIndex": True, "status": "cut"})
        assert response.status_code == 422


class TestBroadcasts:

    def test_sheet_status_event_reaches_every_viewer(self, admin_client, material_id):
        with admin_client.websocket_connect("/ws") as first, admin_client.websocket_connect("/ws") as second:
            admin_client.put(
                f"/api/materials/{material_id}/sheet-status", json={"sheetIndex": 2, "status": "cut"}
            )
            for viewer in (first, second):
                event = viewer.receive_json()
                assert event["type"] == "sheet_status_updated"
                assert event["data"] == {"materialId": material_id, "sheetIndex": 2, "status": "cut"}

    def test_events_arrive_in_send_order(self, admin_client, material_id):
        with admin_client.websocket_connect("/ws") as viewer:
            admin_client.post(f"/api/materials/{material_id}/add-sheets", json={"additionalSheets": 1})
            admin_client.delete(f"/api/materials/{material_id}/sheet/0")
            recut = admin_client.post(f"/api/materials/{material_id}/recuts", json={"quantity": 1}).json()["recut"]
            admin_client.put(f"/api/recuts/{recut['id']}/sheet-status", json={"sheetIndex": 0, "status": "skip"})

            received = [viewer.receive_json() for _ in range(4)]

        assert [e["type"] for e in received] == [
            "sheets_added",
            "sheet_deleted",
            "recut_added",
            "recut_sheet_status_updated",
        ]
        assert received[0]["data"] == {"materialId": material_id, "additionalSheets": 1, "isRecut": False}
        assert received[3]["data"]["recutId"] == recut["id"]
        assert received[3]["data"]["status"] == "skip"

    def test_failed_mutation_sends_nothing(self, admin_client, material_id):
        with admin_client.websocket_connect("/ws") as viewer:
            admin_client.put(f"/api/materials/{material_id}/sheet-status", json={"sheetIndex": 99, "status": "cut"})
            admin_client.post("/api/jobs/0/pause")
            admin_client.delete(f"/api/materials/{material_id}/sheet/0")
            assert viewer.receive_json()["type"] == "sheet_deleted"

    def test_job_completion_announced(self, admin_client, api_job, material_id):
        for index in range(5):
            admin_client.post(f"/api/materials/{material_id}/sheets/{index}", json={"status": "cut"})
        with admin_client.websocket_connect("/ws") as viewer:
            admin_client.post(f"/api/materials/{material_id}/sheets/5", json={"status": "skip"})
            assert viewer.receive_json()["type"] == "sheet_status_updated"
            completed = viewer.receive_json()
        assert completed["type"] == "job_updated"
        assert completed["data"] == {"jobId": api_job["id"], "status": "done"}
