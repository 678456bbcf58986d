"""
backend.py -- HTTP client for the venue REST backend.

The backend owns casino and category data; this module only lists, looks up
and creates records over JSON/multipart and maps the raw payloads onto the
dataclasses in core/models.py. No retry, no caching.

Failures are logged and re-raised as BackendError so route handlers can
render a message. list_subcategories() is the exception: an empty dropdown is
an acceptable answer, so it logs and returns [].
"""

import logging
from typing import Any, Optional

import requests

from core.models import Casino, CasinoForm, CategoryOption, Hotel, Promotion, Restaurant

logger = logging.getLogger("casinovizion.backend")


class BackendError(Exception):
    """Raised when the venue backend is unreachable or answers with a non-2xx status."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _str(value: Any) -> str:
    return "" if value is None else str(value)


def _float(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class BackendClient:
    """Thin client over the casino/category endpoints.

    Usage:
        client = BackendClient("http://localhost:5000/api/", "http://localhost:5000/")
        casinos = client.list_casinos(token=id_token)
        client.close()
    """

    def __init__(self, api_base: str, media_base: str, timeout: int = 10) -> None:
        self.api_base = api_base if api_base.endswith("/") else api_base + "/"
        self.media_base = media_base if media_base.endswith("/") else media_base + "/"
        self.timeout = timeout
        # Shared session for connection pooling; the backend is a known host,
        # so a handful of redirects is plenty.
        self._session = requests.Session()
        self._session.max_redirects = 3

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _request(self, method: str, path: str, token: Optional[str] = None, **kwargs) -> dict:
        url = f"{self.api_base}{path}"
        headers = kwargs.pop("headers", {})
        if token:
            headers["Authorization"] = f"Bearer {token}"
        try:
            resp = self._session.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.error("Backend %s %s failed: %s", method, path, e)
            raise BackendError(f"Backend unreachable: {e}") from e
        if not resp.ok:
            logger.error("Backend %s %s returned %d", method, path, resp.status_code)
            raise BackendError(f"Server error: {resp.status_code}", status_code=resp.status_code)
        try:
            return resp.json()
        except ValueError as e:
            logger.error("Backend %s %s returned invalid JSON", method, path)
            raise BackendError("Backend returned invalid JSON") from e

    # ------------------------------------------------------------------
    # Casinos
    # ------------------------------------------------------------------

    def list_casinos(self, token: Optional[str] = None) -> list[Casino]:
        payload = self._request("GET", "casinos/list", token=token)
        return [self._to_casino(raw) for raw in payload.get("data") or []]

    def get_casino(self, casino_id: str, token: Optional[str] = None) -> Optional[Casino]:
        """Look up a casino by id. The backend has no detail endpoint, so this scans the list."""
        wanted = str(casino_id)
        for casino in self.list_casinos(token=token):
            if casino.id == wanted:
                return casino
        return None

    def create_casino(
        self,
        form: CasinoForm,
        image: Optional[tuple[str, bytes, str]] = None,
        token: Optional[str] = None,
    ) -> dict:
        """Submit a new casino as multipart form data.

        List fields are sent as repeated keys; numbers are stringified. image
        is an optional (filename, content, content_type) tuple.
        """
        fields: list[tuple[str, str]] = []
        for key, value in vars(form).items():
            if isinstance(value, list):
                fields.extend((key, str(v)) for v in value)
            else:
                fields.append((key, str(value)))
        files = {"image": image} if image else None
        return self._request("POST", "casinos/create", token=token, data=fields, files=files)

    def _to_casino(self, raw: dict) -> Casino:
        image = _str(raw.get("image")).replace("\\", "/")
        return Casino(
            id=_str(raw.get("casino_id")),
            name=_str(raw.get("casino_name")),
            category=_str(raw.get("category")),
            subcategories=[_str(s) for s in raw.get("subcategories") or []],
            image=f"{self.media_base}{image.lstrip('/')}" if image else "",
            address=_str(raw.get("address")),
            latitude=_float(raw.get("latitude")),
            longitude=_float(raw.get("longitude")),
            created_at=_str(raw.get("created_at")),
            # The backend capitalises this one field.
            contact=_str(raw.get("Contact")),
            email=_str(raw.get("email")),
            phone=_str(raw.get("phone")),
            status=_str(raw.get("status")) or "Active",
            description=_str(raw.get("description")),
            timings=_str(raw.get("timings")),
            restaurants=[
                Restaurant(
                    id=_str(r.get("id")),
                    name=_str(r.get("name")),
                    cuisine=_str(r.get("cuisine")),
                    rating=_float(r.get("rating")),
                )
                for r in raw.get("restaurants") or []
            ],
            promotions=[
                Promotion(
                    id=_str(p.get("id")),
                    title=_str(p.get("title")),
                    description=_str(p.get("description")),
                    status=_str(p.get("status")),
                )
                for p in raw.get("promotions") or []
            ],
            hotels=[
                Hotel(
                    id=_str(h.get("id")),
                    name=_str(h.get("name")),
                    rooms=_int(h.get("rooms")),
                    rating=_float(h.get("rating")),
                )
                for h in raw.get("hotels") or []
            ],
        )

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    def list_categories(self, token: Optional[str] = None) -> list[CategoryOption]:
        payload = self._request("GET", "categories/list", token=token)
        return [
            CategoryOption(key=_str(c.get("category_id")), value=_str(c.get("category_name")))
            for c in payload.get("data") or []
        ]

    def list_subcategories(self, category_id: str, token: Optional[str] = None) -> list[CategoryOption]:
        """Return the subcategories of a category, or [] when none can be fetched."""
        try:
            payload = self._request(
                "POST", "categories/subcategorybycategoryid", token=token, json={"category_id": category_id}
            )
        except BackendError:
            logger.info("No subcategories available for category %s", category_id)
            return []
        return [CategoryOption(key=_str(c.get("id")), value=_str(c.get("name"))) for c in payload.get("data") or []]

    def close(self) -> None:
        self._session.close()
