#Purpose: The Supabase "adapter/client".
#Sole responsibility: talk to Supabase (PostgREST + Realtime) via HTTP and
#return normalized outputs.
#Encapsulates Supabase-specific details:
#PostgREST filter formatting (eq., in.(...), gte., is.null)
#auth headers (apikey + bearer token)
#count parsing from Content-Range
#error handling (non-2xx and transport errors become SupabaseError)
#It should not contain pricing, dispatch or capacity rules.

import logging
import os
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import requests
from dotenv import load_dotenv

from .errors import StoreError

# Read Supabase connection settings from environment
# Example in .env:
# SUPABASE_URL=https://xyzcompany.supabase.co
# SUPABASE_KEY=<service role or anon key>
load_dotenv()

logger = logging.getLogger(__name__)

# A filter is (column, operator, value), e.g. ("status", "eq", "confirmed")
# or ("status", "in", ["pending", "confirmed"]) or ("rider_id", "is", None).
Filter = Tuple[str, str, Any]


class SupabaseError(StoreError):
    """Raised when Supabase answers with an error or cannot be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def format_value(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if hasattr(value, "isoformat"):
        return value.isoformat()
    if hasattr(value, "value"):  # enums
        return str(value.value)
    return str(value)


def format_filter(operator: str, value: Any) -> str:
    """Convert one filter into PostgREST syntax, e.g. 'in.(a,b)'."""
    if operator == "in":
        return "in.(" + ",".join(format_value(item) for item in value) + ")"
    if operator == "cs":
        # array containment, e.g. preferred_zones=cs.{isolo}
        return "cs.{" + ",".join(format_value(item) for item in value) + "}"
    return f"{operator}.{format_value(value)}"


def build_params(filters: Iterable[Filter]) -> List[Tuple[str, str]]:
    # A list of pairs so the same column can carry several filters.
    return [(column, format_filter(operator, value)) for column, operator, value in filters]


class SupabaseClient:
    """
    Supabase Adapter / Client

    Sole responsibility:
    - Talk to PostgREST (/rest/v1) and Realtime (/realtime/v1) via HTTP
    - Convert (column, op, value) filters into query params
    - Return rows as plain dicts

    """
    def __init__(
        self,
        url: Optional[str] = None,
        key: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = (url or os.getenv("SUPABASE_URL") or "").rstrip("/")
        self.key = key or os.getenv("SUPABASE_KEY")
        self.timeout = timeout or float(os.getenv("SUPABASE_TIMEOUT", "10"))
        self.session = session or requests.Session()

        if not self.base_url or not self.key:
            raise ValueError("Supabase URL/key not set. Please set SUPABASE_URL and SUPABASE_KEY in the .env file.")

    #----------------
    # Internal helpers
    #----------------
    def _headers(self, prefer: Optional[str] = None) -> Dict[str, str]:
        headers = {
            "apikey": self.key,
            "Authorization": f"Bearer {self.key}",
            "Content-Type": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            raise SupabaseError(f"Supabase request failed: {exc}") from exc

        if not response.ok:
            raise SupabaseError(
                f"Supabase error {response.status_code} on {method} {path}: {self._error_message(response)}",
                status_code=response.status_code,
            )
        return response

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            data = response.json()
        except ValueError:
            return response.text or "Unknown error"
        if isinstance(data, dict):
            return data.get("message") or data.get("error") or str(data)
        return str(data)

    @staticmethod
    def _rows(response: requests.Response) -> List[Dict[str, Any]]:
        if not response.content:
            return []
        data = response.json()
        return data if isinstance(data, list) else [data]

    #----------------
    # PostgREST table access
    #----------------
    def select(
        self,
        table: str,
        columns: str = "*",
        filters: Sequence[Filter] = (),
        *,
        order: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        GET /rest/v1/<table>?select=...&<filters>

        `order` uses PostgREST syntax, e.g. "created_at.desc".
        """
        params = [("select", columns)] + build_params(filters)
        if order:
            params.append(("order", order))
        if limit is not None:
            params.append(("limit", str(limit)))

        response = self._request("GET", f"/rest/v1/{table}", params=params, headers=self._headers())
        return self._rows(response)

    def count(self, table: str, filters: Sequence[Filter] = ()) -> int:
        """
        HEAD request with `Prefer: count=exact`; PostgREST answers with
        `Content-Range: 0-24/3573` (or `*/0` when nothing matches).
        """
        params = [("select", "id")] + build_params(filters)
        response = self._request(
            "HEAD", f"/rest/v1/{table}", params=params, headers=self._headers(prefer="count=exact")
        )
        content_range = response.headers.get("Content-Range", "")
        _, _, total = content_range.partition("/")
        if not total or total == "*":
            raise SupabaseError(f"Supabase returned no count for {table}: {content_range!r}")
        return int(total)

    def insert(self, table: str, rows: Any) -> List[Dict[str, Any]]:
        response = self._request(
            "POST", f"/rest/v1/{table}", json=rows, headers=self._headers(prefer="return=representation")
        )
        return self._rows(response)

    def upsert(self, table: str, rows: Any, on_conflict: Optional[str] = None) -> List[Dict[str, Any]]:
        params = [("on_conflict", on_conflict)] if on_conflict else []
        response = self._request(
            "POST",
            f"/rest/v1/{table}",
            params=params,
            json=rows,
            headers=self._headers(prefer="resolution=merge-duplicates,return=representation"),
        )
        return self._rows(response)

    def update(self, table: str, values: Dict[str, Any], filters: Sequence[Filter]) -> List[Dict[str, Any]]:
        """
        PATCH with filters. Returns the rows that were actually updated, so a
        conditional update that matched nothing returns [].
        """
        if not filters:
            # PostgREST would happily update the whole table.
            raise ValueError("update() requires at least one filter")

        response = self._request(
            "PATCH",
            f"/rest/v1/{table}",
            params=build_params(filters),
            json=values,
            headers=self._headers(prefer="return=representation"),
        )
        return self._rows(response)

    #----------------
    # Realtime broadcast
    #----------------
    def broadcast(self, topic: str, event: str, payload: Dict[str, Any]) -> None:
        """
        POST /realtime/v1/api/broadcast: fire-and-forget message to every
        subscriber of `topic`.
        """
        body = {"messages": [{"topic": topic, "event": event, "payload": payload}]}
        self._request("POST", "/realtime/v1/api/broadcast", json=body, headers=self._headers())
        logger.debug("Broadcast %s on %s", event, topic)
