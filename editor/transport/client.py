"""
Abstracts API Client

httpx implementation of AbstractsTransport.

GUARANTEES:
===========
1. One synchronous request per call, no retries
2. Timeouts, network failures, non-2xx answers and unreadable bodies
   all come back as TransportResult with an explicit status
3. The client owns its httpx.Client unless one is injected
"""

from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Optional
import json
import logging

import httpx

from ..config import EditorConfig
from ..figures import FigureUpload
from .contracts import AbstractsTransport, Record, TransportResult, TransportStatus

logger = logging.getLogger(__name__)


class EditorApiClient(AbstractsTransport):
    """
    Client for the abstracts API.

    ``client`` must carry the API base URL (e.g. ``.../api``); paths are
    appended relative to it.
    """

    def __init__(self, client: httpx.Client, owns_client: bool = False):
        self._client = client
        self._owns_client = owns_client

    @staticmethod
    def from_config(config: EditorConfig) -> EditorApiClient:
        client = httpx.Client(
            base_url=config.api_base_url,
            timeout=config.timeout_seconds,
            headers={"User-Agent": config.user_agent, "Accept": "application/json"},
            follow_redirects=True
        )
        return EditorApiClient(client, owns_client=True)

    def close(self):
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> EditorApiClient:
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    # =========================================================================
    # RESOURCE OPERATIONS
    # =========================================================================

    def get_conference(self, conference_id: str) -> TransportResult:
        return self._request("GET", f"conferences/{conference_id}")

    def get_abstract(self, abstract_id: str) -> TransportResult:
        return self._request("GET", f"abstracts/{abstract_id}")

    def create_abstract(self, conference_id: str, record: Record) -> TransportResult:
        return self._request("POST", f"conferences/{conference_id}/abstracts", json=record)

    def update_abstract(self, abstract_id: str, record: Record) -> TransportResult:
        return self._request("PUT", f"abstracts/{abstract_id}", json=record)

    def upload_figure(self, abstract_id: str, upload: FigureUpload) -> TransportResult:
        files = {"file": (upload.filename, upload.payload, upload.content_type)}
        data = {"figure": json.dumps({"caption": upload.caption})}
        return self._request("POST", f"abstracts/{abstract_id}/figures", files=files, data=data)

    def delete_figure(self, figure_id: str) -> TransportResult:
        return self._request("DELETE", f"figures/{figure_id}", expect_body=False)

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def _request(self, method: str, path: str, expect_body: bool = True, **kwargs: Any) -> TransportResult:
        attempted_at = datetime.now(timezone.utc)
        url = str(self._client.base_url.join(path))
        logger.debug("%s %s", method, url)

        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.TimeoutException:
            return self._failure(method, url, attempted_at, TransportStatus.TIMEOUT, "Request timed out")
        except httpx.TransportError as e:
            return self._failure(method, url, attempted_at, TransportStatus.NETWORK_ERROR, str(e))

        completed_at = datetime.now(timezone.utc)

        if not response.is_success:
            logger.warning("%s %s answered HTTP %d", method, url, response.status_code)
            return TransportResult(
                method=method,
                url=url,
                status=TransportStatus.HTTP_ERROR,
                attempted_at=attempted_at,
                completed_at=completed_at,
                http_status=response.status_code,
                error_message=f"HTTP {response.status_code}"
            )

        record = None
        if expect_body:
            try:
                record = response.json()
            except ValueError as e:
                return self._failure(
                    method, url, attempted_at, TransportStatus.PARSE_ERROR,
                    f"Response is not JSON: {e}", http_status=response.status_code
                )
            if not isinstance(record, dict):
                return self._failure(
                    method, url, attempted_at, TransportStatus.PARSE_ERROR,
                    f"Expected a JSON object, got {type(record).__name__}",
                    http_status=response.status_code
                )

        return TransportResult(
            method=method,
            url=url,
            status=TransportStatus.SUCCESS,
            attempted_at=attempted_at,
            completed_at=completed_at,
            http_status=response.status_code,
            record=record
        )

    def _failure(
        self,
        method: str,
        url: str,
        attempted_at: datetime,
        status: TransportStatus,
        message: str,
        http_status: Optional[int] = None
    ) -> TransportResult:
        logger.warning("%s %s failed (%s): %s", method, url, status.value, message)
        return TransportResult(
            method=method,
            url=url,
            status=status,
            attempted_at=attempted_at,
            completed_at=datetime.now(timezone.utc),
            http_status=http_status,
            error_message=message
        )
