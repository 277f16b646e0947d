"""PostgREST-style HTTP row store (``weekly_rows`` and ``movimientos_cliente`` tables)."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

import requests

from roikit.config import Settings
from roikit.connectors.store.base import RowStore, entry_from_payload, entry_payload
from roikit.errors import StoreError
from roikit.models import CrmMovement, WeeklyEntry
from roikit.utils.logs import report

logger = report.settings(__file__)

DEFAULT_TIMEOUT_SEC = 30.0
ENTRIES_TABLE = "weekly_rows"
MOVEMENTS_TABLE = "movimientos_cliente"


class RestRowStore(RowStore):
	def __init__(self, settings: Settings, session: Optional[requests.Session] = None,
				 timeout: float = DEFAULT_TIMEOUT_SEC) -> None:
		if not settings.rest_url or not settings.rest_key:
			raise StoreError("ROIKIT_REST_URL and ROIKIT_REST_KEY must be set for the REST store")
		self.base = settings.rest_url.rstrip("/") + "/rest/v1"
		self.session = session or requests.Session()
		self.timeout = timeout
		self.headers = {
			"Content-Type": "application/json",
			"Accept": "application/json",
			"apikey": settings.rest_key,
			"Authorization": f"Bearer {settings.rest_key}",
		}

	def _request(self, method: str, table: str, *, params: Optional[Dict[str, str]] = None,
				 json: Any = None, prefer: Optional[str] = None) -> Any:
		url = f"{self.base}/{table}"
		headers = dict(self.headers)
		if prefer:
			headers["Prefer"] = prefer
		logger.debug("%s %s %s", method, url, params or "")
		try:
			resp = self.session.request(method, url, params=params, json=json,
										headers=headers, timeout=self.timeout)
		except requests.RequestException as e:
			raise StoreError(f"Store request failed: {e}") from e
		if resp.status_code >= 400:
			raise StoreError(f"Store HTTP {resp.status_code}: {resp.text}")
		if not resp.content:
			return None
		return resp.json()

	# Reads
	def list_entries(self) -> List[WeeklyEntry]:
		rows = self._request("GET", ENTRIES_TABLE, params={"select": "id,row"}) or []
		return [entry_from_payload(r) for r in rows]

	def list_movements(self) -> List[CrmMovement]:
		rows = self._request("GET", MOVEMENTS_TABLE, params={"select": "*"}) or []
		return [CrmMovement.from_dict(r) for r in rows]

	# Writes
	def upsert(self, entry: WeeklyEntry) -> None:
		self.batch_upsert([entry])

	def batch_upsert(self, entries: Iterable[WeeklyEntry]) -> None:
		payload = [entry_payload(e) for e in entries]
		if not payload:
			return
		self._request("POST", ENTRIES_TABLE, params={"on_conflict": "id"}, json=payload,
					  prefer="resolution=merge-duplicates,return=minimal")
		logger.info("Upserted %d row(s) into %s", len(payload), ENTRIES_TABLE)

	def delete(self, entry_id: str) -> None:
		self._request("DELETE", ENTRIES_TABLE, params={"id": f"eq.{entry_id}"}, prefer="return=minimal")

	def insert_movement(self, movement: CrmMovement) -> None:
		row = movement.to_dict()
		self._request("POST", MOVEMENTS_TABLE, json=row, prefer="return=minimal")
