import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

from utils.logger import logger
from utils.query.postgrest_queries import SelectQuery, prefer_header

_CONTENT_RANGE_TOTAL = re.compile(r"/(\d+)\s*$")


class StoreRequestError(Exception):
    """A call to the store failed at the transport or HTTP level."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass
class StoreResponse:
    """Raw outcome of a write, left for the caller to classify."""

    status_code: int
    text: str = ""
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def json_rows(self) -> Optional[List[Dict[str, Any]]]:
        """Echoed rows, or None when the body is not a JSON array."""
        if not self.text:
            return None
        try:
            data = json.loads(self.text)
        except ValueError:
            return None
        return data if isinstance(data, list) else None

    def affected_count(self) -> Optional[int]:
        """Row count from a Content-Range header such as '*/12' or '0-11/12'."""
        content_range = self.headers.get("Content-Range") or self.headers.get("content-range")
        if not content_range:
            return None
        match = _CONTENT_RANGE_TOTAL.search(content_range)
        return int(match.group(1)) if match else None


class PostgRESTStore:
    """Thin client for the Supabase REST (PostgREST) endpoint."""

    def __init__(self, base_url: str, api_key: str, timeout: float = 30, session: requests.Session = None):
        self.rest_url = f"{base_url.rstrip('/')}/rest/v1"
        self.timeout = timeout
        self.session = session or requests.Session()
        self.headers = {
            'apikey': api_key,
            'Authorization': f'Bearer {api_key}',
            'Content-Type': 'application/json'
        }

    def close(self):
        """Release pooled connections."""
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def _error_text(self, response) -> str:
        text = response.text or ""
        return text or f"{response.status_code} {response.reason or ''}".strip()

    def select(self, query: SelectQuery) -> List[Dict[str, Any]]:
        """Run a filtered read and return the matched rows."""
        url = f"{self.rest_url}/{query.table}"
        try:
            response = self.session.get(
                url,
                params=query.params(),
                headers=self.headers,
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            raise StoreRequestError(f"HTTP request failed: {str(e)}")

        if not 200 <= response.status_code < 300:
            raise StoreRequestError(self._error_text(response), response.status_code)

        try:
            data = response.json()
        except ValueError:
            raise StoreRequestError(f"Invalid JSON from {query.table}", response.status_code)

        if not isinstance(data, list):
            logger.warning(f"Unexpected payload from {query.table}: {type(data).__name__}")
            return []
        return data

    def write(
        self,
        table: str,
        records: List[Dict[str, Any]],
        on_conflict: str,
        resolution: str,
        returning: str = "minimal",
        count: Optional[str] = None
    ) -> StoreResponse:
        """
        POST an array of records with a conflict-resolution policy.

        Non-success statuses are returned, not raised. Callers decide
        which failures are benign.
        """
        url = f"{self.rest_url}/{table}"
        headers = dict(self.headers)
        headers['Prefer'] = prefer_header(resolution, returning, count)
        try:
            response = self.session.post(
                url,
                params=[("on_conflict", on_conflict)],
                headers=headers,
                json=records,
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            raise StoreRequestError(f"HTTP request failed: {str(e)}")

        text = response.text or ""
        if not 200 <= response.status_code < 300:
            text = self._error_text(response)
        return StoreResponse(
            status_code=response.status_code,
            text=text,
            headers=dict(response.headers or {})
        )
