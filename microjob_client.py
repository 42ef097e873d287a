"""Microjob Marketplace API client.

A small wrapper around the marketplace HTTP API for scripts, bots and
front‑end proxies.  It uses the ``requests`` library internally.

Every high‑level method returns a tuple ``(data, error)``: on success
``error`` is ``None``; on failure ``data`` is empty/``None`` and
``error`` is a dictionary with ``status_code`` and ``message``.  The
client never raises for HTTP or network errors.

Example::

    api = MicrojobAPI(base_url="http://localhost:8000")
    _, error = api.login("worker@example.com", "secret123")
    status, error = api.get_reservation_status(42)
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

import requests


logger = logging.getLogger(__name__)

Error = Optional[Dict[str, Any]]


class MicrojobAPI:
    """Client for the marketplace API mounted under ``/api``."""

    def __init__(
        self,
        *,
        base_url: str,
        token: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: float = 15,
    ) -> None:
        """Initialise the API client.

        Args:
            base_url: Server root, e.g. ``https://example.com``.
            token: Optional bearer token.  ``login`` sets it as well.
            session: Optional requests session.  If not supplied a
                session will be created automatically.
            timeout: Per‑request timeout in seconds.
        """
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.session = session or requests.Session()
        self.timeout = timeout

    # ------------------------------------------------------------------
    # Low level HTTP helpers
    # ------------------------------------------------------------------
    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Dict[str, Any] | None = None,
        json_body: Any | None = None,
    ) -> Tuple[Optional[Any], Error]:
        """Perform an HTTP request against ``/api<path>``.

        Returns ``(data, None)`` with the parsed JSON body on success
        and ``(None, error)`` on failure.
        """
        url = f"{self.base_url}/api{path}"
        headers: Dict[str, str] = {}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        try:
            logger.debug("Sending %s request to %s", method, url)
            response = self.session.request(
                method=method,
                url=url,
                params=params,
                json=json_body,
                headers=headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
            if response.content:
                return response.json(), None
            return None, None
        except requests.HTTPError as exc:
            # ``Response.__bool__`` is False for error statuses, so compare to None.
            status = exc.response.status_code if exc.response is not None else None
            message = ""
            if exc.response is not None:
                try:
                    err_json = exc.response.json()
                    message = err_json.get("detail") or err_json.get("reason") or str(err_json)
                except ValueError:
                    message = exc.response.text
            if not message:
                message = str(exc)
            logger.error("API request failed (%s): %s", status, message)
            return None, {"status_code": status, "message": message}
        except requests.RequestException as exc:
            logger.error("API request failed: %s", exc)
            return None, {"status_code": None, "message": str(exc)}

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------
    def login(self, email: str, password: str) -> Tuple[Optional[str], Error]:
        """Log in and remember the returned token for later calls."""
        data, error = self._request("POST", "/auth/login", json_body={"email": email, "password": password})
        if error:
            return None, error
        self.token = data.get("access_token") if isinstance(data, dict) else None
        if not self.token:
            return None, {"status_code": None, "message": "Login response did not contain a token"}
        return self.token, None

    # ------------------------------------------------------------------
    # Jobs and reservations
    # ------------------------------------------------------------------
    def list_jobs(self, **filters: Any) -> Tuple[List[Dict[str, Any]], Error]:
        params = {key: value for key, value in filters.items() if value is not None}
        data, error = self._request("GET", "/jobs", params=params or None)
        if error:
            return [], error
        return data if isinstance(data, list) else [], None

    def get_reservation_status(self, job_id: int) -> Tuple[Optional[Dict[str, Any]], Error]:
        """Return the job's reservation status.

        A 503 from the server (status undeterminable) is reported as an
        error, not as "not reserved".
        """
        return self._request("GET", f"/jobs/{job_id}/reservation")

    def reserve_job(self, job_id: int) -> Tuple[Optional[Dict[str, Any]], Error]:
        return self._request("POST", "/jobs/reserve", json_body={"job_id": job_id})

    def cancel_reservation(self, job_id: int) -> Tuple[bool, Error]:
        data, error = self._request("POST", "/reservations/cancel", json_body={"job_id": job_id})
        if error:
            return False, error
        return bool(data and data.get("success")), None

    def list_my_reservations(self) -> Tuple[List[Dict[str, Any]], Error]:
        data, error = self._request("GET", "/reservations/user")
        if error:
            return [], error
        return data if isinstance(data, list) else [], None

    # ------------------------------------------------------------------
    # Favorites
    # ------------------------------------------------------------------
    def list_favorites(self) -> Tuple[List[Dict[str, Any]], Error]:
        data, error = self._request("GET", "/favorites")
        if error:
            return [], error
        return data if isinstance(data, list) else [], None

    def add_favorite(self, job_id: int) -> Tuple[Optional[Dict[str, Any]], Error]:
        return self._request("POST", "/favorites", json_body={"job_id": job_id})

    def remove_favorite(self, job_id: int) -> Tuple[bool, Error]:
        data, error = self._request("DELETE", "/favorites", json_body={"job_id": job_id})
        if error:
            return False, error
        return bool(data and data.get("removed")), None

    # ------------------------------------------------------------------
    # Referrals
    # ------------------------------------------------------------------
    def get_referrals(self) -> Tuple[Optional[Dict[str, Any]], Error]:
        return self._request("GET", "/referrals")

    def generate_referral_code(self) -> Tuple[Optional[str], Error]:
        data, error = self._request("POST", "/referrals/generate-code")
        if error:
            return None, error
        return data.get("referral_code") if isinstance(data, dict) else None, None
