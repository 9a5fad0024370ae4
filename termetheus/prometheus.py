"""Prometheus HTTP API client for range queries."""
import logging
import time
from typing import Optional

import httpx
from pydantic import ValidationError

from termetheus.config import PrometheusConfig
from termetheus.errors import FetchError
from termetheus.self_metrics import SelfMetrics
from termetheus.series import QueryResponse, QueryResult
from termetheus.time_utils import now_as_instant, one_hour_before

logger = logging.getLogger(__name__)

QUERY_RANGE_PATH = "/api/v1/query_range"


class PrometheusClient:
    """Runs a single range query against a Prometheus-compatible backend."""

    def __init__(
        self,
        config: PrometheusConfig,
        metrics: Optional[SelfMetrics] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            config: Backend URL, query and request settings
            metrics: Optional self-metrics to record fetch timings into
            transport: Optional httpx transport, used by tests
        """
        self.config = config
        self.metrics = metrics
        self._transport = transport

    def get_metrics(self, start: str, end: str) -> QueryResult:
        """
        Run the configured query over [start, end].

        Args:
            start: RFC3339 range start
            end: RFC3339 range end

        Returns:
            The `data` section of the response

        Raises:
            FetchError: on network errors, non-2xx responses, malformed
                bodies or a non-success status
        """
        params = {
            "query": self.config.query,
            "start": start,
            "end": end,
            "step": self.config.step,
        }
        logger.info(f"Querying {self.config.base_url}{QUERY_RANGE_PATH} for '{self.config.query}' from {start} to {end}")

        fetch_start = time.monotonic()
        try:
            response = self._request(params)
            result = self._decode(response)
        except FetchError as e:
            logger.error(f"Fetch failed: {e}")
            if self.metrics:
                self.metrics.record_fetch_error(e.reason)
            raise

        duration = time.monotonic() - fetch_start
        if self.metrics:
            self.metrics.record_fetch(duration)
        logger.info(f"Received {len(result.result)} series ({result.result_type}) in {duration:.3f}s")
        return result

    def fetch_last_hour(self) -> QueryResult:
        """Run the query over the hour leading up to now."""
        end = now_as_instant()
        return self.get_metrics(one_hour_before(end), end)

    def _request(self, params) -> httpx.Response:
        try:
            with httpx.Client(
                base_url=self.config.base_url,
                timeout=self.config.timeout_s,
                transport=self._transport,
            ) as client:
                return client.get(QUERY_RANGE_PATH, params=params)
        except httpx.HTTPError as e:
            raise FetchError(f"Request to {self.config.base_url} failed: {e}", reason="network") from e

    def _decode(self, response: httpx.Response) -> QueryResult:
        try:
            payload = response.json()
        except ValueError as e:
            if response.is_error:
                raise FetchError(f"HTTP {response.status_code} from backend", reason="http") from e
            raise FetchError(f"Response body is not JSON: {e}", reason="body") from e

        if response.is_error or (isinstance(payload, dict) and payload.get("status") != "success"):
            detail = payload.get("error") if isinstance(payload, dict) else None
            status = payload.get("status") if isinstance(payload, dict) else None
            raise FetchError(
                f"Query failed (HTTP {response.status_code}, status={status}): {detail or 'no error message'}",
                reason="status",
            )

        try:
            return QueryResponse.model_validate(payload).data
        except ValidationError as e:
            raise FetchError(f"Unexpected response shape: {e}", reason="body") from e

