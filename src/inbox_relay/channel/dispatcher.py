"""
Outbound channel dispatcher.

Posts one encoded message per HTTP call as {"text": message}. Delivery is
at-most-once per call: no retries, bounded timeout, and failures are returned
as DispatchResult instead of raised. Reliability comes from the scheduler
being invoked again on a timer.
"""

import time
from typing import Any, Optional

import httpx
import structlog

from inbox_relay.models.protocol_models import DispatchResult
from inbox_relay.monitoring.metrics import channel_posts_total, channel_post_latency_seconds

logger = structlog.get_logger(__name__)


class ChannelDispatcher:
    """
    Fire-and-forget poster for the chat channel and the Hub endpoint.

    Holds a persistent httpx.Client for connection pooling; call close() on
    shutdown.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Initialize dispatcher.

        Args:
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests inject a MockTransport)
        """
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    def _get_client(self) -> httpx.Client:
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
                follow_redirects=True,
            )
        return self._client

    def post(self, endpoint_url: str, message: str) -> DispatchResult:
        """Post a channel message wrapped in the {"text": ...} envelope."""
        return self.post_json(endpoint_url, {"text": message}, kind="channel")

    def post_json(self, endpoint_url: str, payload: dict[str, Any], kind: str = "hub") -> DispatchResult:
        """
        POST arbitrary JSON. Never raises.

        Returns:
            DispatchResult with delivered=True only for HTTP 200
        """
        if not endpoint_url:
            logger.warning("No endpoint URL configured, skipping post", kind=kind)
            channel_posts_total.labels(kind=kind, outcome="skipped").inc()
            return DispatchResult(delivered=False, skipped=True, error="endpoint URL not configured")

        start_time = time.time()
        try:
            response = self._get_client().post(endpoint_url, json=payload)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error("Channel post failed", kind=kind, url=endpoint_url, error_type=type(e).__name__, error=str(e))
            channel_posts_total.labels(kind=kind, outcome="error").inc()
            return DispatchResult(delivered=False, error=f"{type(e).__name__}: {e}")
        finally:
            channel_post_latency_seconds.labels(kind=kind).observe(time.time() - start_time)

        if response.status_code != 200:
            logger.warning(
                "Channel post rejected",
                kind=kind,
                url=endpoint_url,
                status_code=response.status_code,
                body=response.text[:200],
            )
            channel_posts_total.labels(kind=kind, outcome="rejected").inc()
            return DispatchResult(
                delivered=False,
                status_code=response.status_code,
                error=f"HTTP {response.status_code}",
            )

        logger.info("Channel post delivered", kind=kind, payload_size=len(str(payload)))
        channel_posts_total.labels(kind=kind, outcome="delivered").inc()
        return DispatchResult(delivered=True, status_code=response.status_code)

    def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            self._client.close()
        self._client = None
