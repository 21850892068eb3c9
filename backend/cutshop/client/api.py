"""
HTTP client for the Cutshop API.

Thin wrapper over a requests.Session: one method per endpoint, camelCase
bodies, responses parsed into the server's models. Every non-2xx
response and every transport failure raises CutshopClientError.

The session cookie set by login() is kept by the underlying session.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

import requests

from ..auth.models import User
from ..catalog.models import Color, ColorGroup, ColorWithGroup
from ..jobs.models import Cutlist, DashboardStats, Job, Material, RecutEntry
from ..sheets.models import SheetStatus
from .errors import NETWORK_ERROR, CutshopClientError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://127.0.0.1:8085"
DEFAULT_TIMEOUT = 10.0


def _status_value(status: Union[str, SheetStatus]) -> str:
    return status.value if isinstance(status, SheetStatus) else status


class CutshopClient:
    """
    Cutshop API client.

    Args:
        base_url: Server root, without the /api prefix
        session: requests.Session or anything with the same request()
            signature (a FastAPI TestClient works)
        timeout: Per-request timeout in seconds; None leaves it to the
            session (TestClient does not take one per request)
    """

    def __init__(self, base_url: str = DEFAULT_BASE_URL, session=None, timeout: Optional[float] = DEFAULT_TIMEOUT):
        self._base_url = base_url.rstrip("/")
        self._session = session if session is not None else requests.Session()
        self._timeout = timeout

    def _request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self._base_url}{path}"
        if self._timeout is not None:
            kwargs["timeout"] = self._timeout
        try:
            response = self._session.request(method, url, **kwargs)
        except requests.RequestException as e:
            logger.warning(f"{method} {path} failed: {e}")
            raise CutshopClientError(0, NETWORK_ERROR, str(e))

        if response.status_code >= 400:
            code, message = None, response.text or f"HTTP {response.status_code}"
            try:
                body = response.json()
            except ValueError:
                body = None
            if isinstance(body, dict):
                code = body.get("code")
                message = body.get("message") or str(body.get("detail") or message)
            logger.debug(f"{method} {path} -> {response.status_code} {code}")
            raise CutshopClientError(response.status_code, code, message)

        return response.json()

    # Auth

    def login(self, username: str, password: str) -> Dict[str, Any]:
        return self._request("POST", "/api/login", json={"username": username, "password": password})["user"]

    def logout(self) -> None:
        self._request("POST", "/api/logout")

    def me(self) -> Dict[str, Any]:
        return self._request("GET", "/api/me")["user"]

    def setup_required(self) -> bool:
        return bool(self._request("GET", "/api/setup/required")["required"])

    def setup(self, username: str, password: str) -> None:
        self._request("POST", "/api/setup", json={"username": username, "password": password})

    # Jobs

    def list_jobs(self, search: Optional[str] = None, status: Optional[str] = None) -> List[Job]:
        params = {k: v for k, v in (("search", search), ("status", status)) if v}
        return [Job.model_validate(j) for j in self._request("GET", "/api/jobs", params=params)]

    def get_job(self, job_id: int) -> Job:
        return Job.model_validate(self._request("GET", f"/api/jobs/{job_id}"))

    def create_job(self, customer_name: str, job_name: str, materials: Iterable[Tuple[int, int]]) -> Job:
        body = {
            "customerName": customer_name,
            "jobName": job_name,
            "materials": [{"colorId": c, "totalSheets": n} for c, n in materials],
        }
        return Job.model_validate(self._request("POST", "/api/jobs", json=body))

    def delete_job(self, job_id: int) -> None:
        self._request("DELETE", f"/api/jobs/{job_id}")

    def start_timer(self, job_id: int) -> Job:
        return Job.model_validate(self._request("POST", f"/api/jobs/{job_id}/start-timer")["job"])

    def stop_timer(self, job_id: int) -> Job:
        return Job.model_validate(self._request("POST", f"/api/jobs/{job_id}/stop-timer")["job"])

    def pause_job(self, job_id: int) -> Job:
        return Job.model_validate(self._request("POST", f"/api/jobs/{job_id}/pause")["job"])

    def resume_job(self, job_id: int) -> Job:
        return Job.model_validate(self._request("POST", f"/api/jobs/{job_id}/resume")["job"])

    def add_material(self, job_id: int, color_id: int, total_sheets: int, cutlist_id: Optional[int] = None) -> Material:
        body = {"colorId": color_id, "totalSheets": total_sheets}
        if cutlist_id is not None:
            body["cutlistId"] = cutlist_id
        data = self._request("POST", f"/api/jobs/{job_id}/materials", json=body)
        return Material.model_validate(data["material"])

    def create_cutlists(self, job_id: int, count: int = 1) -> List[Cutlist]:
        data = self._request("POST", f"/api/jobs/{job_id}/cutlists", json={"count": count})
        return [Cutlist.model_validate(c) for c in data["cutlists"]]

    def delete_cutlist(self, cutlist_id: int) -> None:
        self._request("DELETE", f"/api/cutlists/{cutlist_id}")

    # Materials and sheets

    def set_sheet_status(self, material_id: int, sheet_index: int, status: Union[str, SheetStatus]) -> Material:
        body = {"sheetIndex": sheet_index, "status": _status_value(status)}
        data = self._request("PUT", f"/api/materials/{material_id}/sheet-status", json=body)
        return Material.model_validate(data["material"])

    def update_progress(self, material_id: int, completed_sheets: int) -> Material:
        data = self._request(
            "PUT", f"/api/materials/{material_id}/progress", json={"completedSheets": completed_sheets}
        )
        return Material.model_validate(data["material"])

    def add_sheets(self, material_id: int, count: int, is_recut: bool = False) -> Material:
        body = {"additionalSheets": count, "isRecut": is_recut}
        data = self._request("POST", f"/api/materials/{material_id}/add-sheets", json=body)
        return Material.model_validate(data["material"])

    def delete_sheet(self, material_id: int, sheet_index: int) -> Material:
        data = self._request("DELETE", f"/api/materials/{material_id}/sheet/{sheet_index}")
        return Material.model_validate(data["material"])

    def delete_material(self, material_id: int) -> None:
        self._request("DELETE", f"/api/materials/{material_id}")

    # Recuts

    def list_recuts(self, material_id: int) -> List[RecutEntry]:
        return [RecutEntry.model_validate(r) for r in self._request("GET", f"/api/materials/{material_id}/recuts")]

    def add_recut(self, material_id: int, quantity: int, reason: Optional[str] = None) -> RecutEntry:
        data = self._request(
            "POST", f"/api/materials/{material_id}/recuts", json={"quantity": quantity, "reason": reason}
        )
        return RecutEntry.model_validate(data["recut"])

    def set_recut_sheet_status(self, recut_id: int, sheet_index: int, status: Union[str, SheetStatus]) -> RecutEntry:
        body = {"sheetIndex": sheet_index, "status": _status_value(status)}
        data = self._request("PUT", f"/api/recuts/{recut_id}/sheet-status", json=body)
        return RecutEntry.model_validate(data["recut"])

    def delete_recut(self, recut_id: int) -> None:
        self._request("DELETE", f"/api/recuts/{recut_id}")

    # Catalog, users, dashboard

    def list_colors(self, search: Optional[str] = None) -> List[ColorWithGroup]:
        params = {"search": search} if search else {}
        return [ColorWithGroup.model_validate(c) for c in self._request("GET", "/api/colors", params=params)]

    def create_color(self, name: str, hex_color: str, group_id: Optional[int] = None) -> Color:
        body = {"name": name, "hexColor": hex_color, "groupId": group_id}
        return Color.model_validate(self._request("POST", "/api/colors", json=body))

    def create_color_group(self, name: str) -> ColorGroup:
        return ColorGroup.model_validate(self._request("POST", "/api/color-groups", json={"name": name}))

    def list_users(self) -> List[User]:
        return [User.model_validate(u) for u in self._request("GET", "/api/users")]

    def dashboard_stats(self, **window: str) -> DashboardStats:
        """window keys: sheetsFrom, sheetsTo, timeFrom, timeTo."""
        return DashboardStats.model_validate(self._request("GET", "/api/dashboard/stats", params=window))
