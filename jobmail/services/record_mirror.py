"""
Record mirror interface and the Airtable implementation.

The mirror is a non-authoritative copy of job applications. Callers must
treat every call as unreliable.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import requests

from jobmail.core.exceptions import MirrorError

logger = logging.getLogger(__name__)


class RecordMirror(ABC):
    """Abstract base class for external record stores."""

    @abstractmethod
    def upsert(self, external_id: Optional[str], fields: Dict[str, Any]) -> str:
        """
        Create the record (external_id is None) or overwrite its fields.

        Returns:
            The external record ID
        """

    @abstractmethod
    def update(self, external_id: str, fields: Dict[str, Any]) -> None:
        """Patch the given fields of an existing record."""


class AirtableMirror(RecordMirror):
    """Airtable table over the REST API."""

    def __init__(
        self,
        api_key: str,
        base_id: str,
        table_name: str = "JobApplications",
        api_base: str = "https://api.airtable.com/v0",
        timeout: float = 10,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.base_id = base_id
        self.table_name = table_name
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def table_url(self) -> str:
        return f"{self.api_base}/{self.base_id}/{self.table_name}"

    def _send(self, method: str, url: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        try:
            response = self.session.request(method, url, headers=headers, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise MirrorError(f"Airtable unreachable: {e}") from e

        if response.status_code != 200:
            raise MirrorError(f"Airtable API error: {response.status_code} - {response.text[:200]}")

        try:
            return response.json()
        except ValueError as e:
            raise MirrorError("Airtable returned invalid JSON") from e

    def upsert(self, external_id: Optional[str], fields: Dict[str, Any]) -> str:
        if external_id:
            self.update(external_id, fields)
            return external_id

        result = self._send("POST", self.table_url, {"records": [{"fields": fields}], "typecast": True})
        records = result.get("records") or []
        if not records or not records[0].get("id"):
            raise MirrorError("Airtable create returned no record id")
        return records[0]["id"]

    def update(self, external_id: str, fields: Dict[str, Any]) -> None:
        self._send("PATCH", f"{self.table_url}/{external_id}", {"fields": fields, "typecast": True})
