import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

import requests

from config import check_remote_settings
from errors import NetworkError
from models import field_value

logger = logging.getLogger(__name__)

COLLECTIONS = ("projects", "activities", "beneficiaries", "indicators", "partners")


@dataclass
class Query:
    """Equality (AND) + substring search (OR across fields) + one ordering."""

    equals: dict = field(default_factory=dict)
    search: str = ""
    search_fields: tuple = ()
    order_by: Optional[str] = None
    descending: bool = False

    def matches(self, row) -> bool:
        for name, expected in self.equals.items():
            if expected is None or expected == "":
                continue
            if str(field_value(row, name)) != str(expected):
                return False
        term = (self.search or "").strip().lower()
        if term and self.search_fields:
            return any(
                term in str(field_value(row, name) or "").lower()
                for name in self.search_fields
            )
        return True

    def apply(self, rows):
        out = [r for r in rows if self.matches(r)]
        if self.order_by:
            # rows without a value sort last in both directions
            present = [r for r in out if field_value(r, self.order_by) is not None]
            missing = [r for r in out if field_value(r, self.order_by) is None]
            present.sort(key=lambda r: field_value(r, self.order_by), reverse=self.descending)
            out = present + missing
        return out

    def to_params(self):
        params = {"select": "*"}
        for name, expected in self.equals.items():
            if expected is None or expected == "":
                continue
            params[name] = f"eq.{expected}"
        term = (self.search or "").strip()
        if term and self.search_fields:
            parts = [f"{name}.ilike.*{term}*" for name in self.search_fields]
            params["or"] = "(" + ",".join(parts) + ")"
        if self.order_by:
            params["order"] = f"{self.order_by}.{'desc' if self.descending else 'asc'}"
        return params


@dataclass
class FetchResult:
    rows: list = field(default_factory=list)
    error: Optional[Exception] = None

    @property
    def ok(self):
        return self.error is None


class BaseRepository:
    """CRUD contract shared by the remote client and in-memory stand-ins."""

    def list(self, collection, query=None):
        raise NotImplementedError

    def create(self, collection, record):
        raise NotImplementedError

    def update(self, collection, record_id, patch):
        raise NotImplementedError

    def delete(self, collection, record_id):
        raise NotImplementedError

    def ping(self):
        try:
            self.list("projects", Query())
        except NetworkError:
            return False
        return True

    def fetch_many(self, requests_by_name):
        """Run independent list() calls concurrently.

        Each entry is wrapped in a FetchResult so one failed collection does
        not prevent the others from rendering.
        """
        if not requests_by_name:
            return {}

        def run(spec):
            collection, query = spec
            try:
                return FetchResult(rows=self.list(collection, query))
            except NetworkError as e:
                return FetchResult(error=e)

        with ThreadPoolExecutor(max_workers=len(requests_by_name)) as pool:
            futures = {name: pool.submit(run, spec) for name, spec in requests_by_name.items()}
            return {name: f.result() for name, f in futures.items()}


def _now():
    return datetime.now(timezone.utc).isoformat()


class RepositoryClient(BaseRepository):
    """Thin client over the hosted store's REST data API."""

    def __init__(self, base_url, api_key, timeout=10, collections=None, session=None):
        check_remote_settings(base_url, api_key)
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.collections = dict(collections or {name: name for name in COLLECTIONS})
        self.session = session or requests.Session()

    def _url(self, collection):
        table = self.collections.get(collection, collection)
        return f"{self.base_url}/rest/v1/{table}"

    def _headers(self):
        return {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "Prefer": "return=representation",
        }

    def _request(self, method, collection, params=None, payload=None):
        try:
            r = self.session.request(
                method,
                self._url(collection),
                params=params,
                json=payload,
                headers=self._headers(),
                timeout=self.timeout,
            )
            r.raise_for_status()
        except requests.RequestException as e:
            logger.error("%s %s failed: %s", method, collection, e)
            raise NetworkError(f"Network error while contacting the data store ({collection}).") from e
        if not r.content:
            return []
        try:
            return r.json()
        except ValueError as e:
            logger.error("%s %s returned invalid JSON", method, collection)
            raise NetworkError(f"Invalid response from the data store ({collection}).") from e

    def list(self, collection, query=None):
        params = (query or Query()).to_params()
        data = self._request("GET", collection, params=params)
        logger.debug("Loaded %d rows from %s", len(data), collection)
        return data or []

    def create(self, collection, record):
        stamp = _now()
        payload = [{**record, "created_at": stamp, "updated_at": stamp}]
        payload[0].pop("id", None)
        data = self._request("POST", collection, payload=payload)
        logger.info("Created %s record", collection)
        return data[0] if data else None

    def update(self, collection, record_id, patch):
        payload = {**patch, "updated_at": _now()}
        payload.pop("id", None)
        payload.pop("created_at", None)
        data = self._request("PATCH", collection, params={"id": f"eq.{record_id}"}, payload=payload)
        logger.info("Updated %s record %s", collection, record_id)
        return data[0] if data else None

    def delete(self, collection, record_id):
        self._request("DELETE", collection, params={"id": f"eq.{record_id}"})
        logger.info("Deleted %s record %s", collection, record_id)
        return True

    def ping(self):
        try:
            self._request("GET", "projects", params={"select": "id", "limit": "1"})
        except NetworkError:
            return False
        return True
