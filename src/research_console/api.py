"""HTTP client for the research API: progress streams, cancellation and query submission."""

import logging
from typing import Any, AsyncIterable, AsyncIterator

import httpx
from pydantic import BaseModel, ValidationError

from .exceptions import ApiError, CancelRequestError, StreamConnectionError
from .query.models import ExecuteAck, QuerySubmission

logger = logging.getLogger(__name__)


class CancelAck(BaseModel):
    """Acknowledgement of a cancel request."""

    success: bool
    message: str | None = None


async def iter_sse_data(lines: AsyncIterable[str]) -> AsyncIterator[str]:
    """Yield the data payload of each server-sent event.

    ``data:`` lines are joined with newlines until a blank line ends the event.
    Comments and the ``event``, ``id`` and ``retry`` fields carry nothing the
    progress feed uses and are skipped.
    """
    buffer: list[str] = []
    async for line in lines:
        line = line.rstrip("\r\n")
        if not line:
            if buffer:
                yield "\n".join(buffer)
                buffer = []
            continue
        if line.startswith(":"):
            continue

        field, _, value = line.partition(":")
        if field == "data":
            buffer.append(value[1:] if value.startswith(" ") else value)

    # Stream closed without a trailing blank line
    if buffer:
        yield "\n".join(buffer)


class ResearchApiClient:
    """Async client for the research API.

    Implements the transport the progress consumer needs (``stream`` and
    ``cancel``) plus query submission.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize the client.

        Args:
            base_url: API root, defaults to the configured ``api.base_url``
            timeout: Connect/request timeout, defaults to ``api.timeout``
            client: Pre-built httpx client (tests inject a MockTransport here)
        """
        if base_url is None or timeout is None:
            from .config import settings

            base_url = base_url or settings.api.base_url
            timeout = timeout if timeout is not None else settings.api.timeout

        self._owns_client = client is None
        self._client = client if client is not None else httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self._timeout = timeout

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "ResearchApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def stream(self, run_id: str) -> AsyncIterator[str]:
        """Subscribe to a run's progress events, yielding raw JSON payloads.

        The stream has no read timeout; it lasts until the server closes it or
        the caller stops iterating (which closes the connection).

        Raises:
            StreamConnectionError: If the connection fails or is refused
        """
        url = f"/api/query/{run_id}/progress"
        timeout = httpx.Timeout(self._timeout, read=None)
        try:
            async with self._client.stream("GET", url, headers={"Accept": "text/event-stream"}, timeout=timeout) as response:
                if response.status_code >= 400:
                    raise StreamConnectionError(f"Progress stream returned HTTP {response.status_code}")
                logger.debug(f"Subscribed to progress stream for run {run_id}")
                async for data in iter_sse_data(response.aiter_lines()):
                    yield data
        except httpx.HTTPError as e:
            raise StreamConnectionError(f"Progress stream interrupted: {e}") from e

    async def cancel(self, run_id: str) -> CancelAck:
        """Ask the backend to abandon a run.

        Raises:
            CancelRequestError: If the request fails or is not acknowledged
        """
        try:
            response = await self._client.post(f"/api/query/{run_id}/cancel")
        except httpx.HTTPError as e:
            raise CancelRequestError(f"Unable to cancel query: {e}") from e

        if response.status_code >= 400:
            raise CancelRequestError(response.text or f"Unable to cancel query (HTTP {response.status_code})")

        try:
            ack = CancelAck.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise CancelRequestError(f"Unexpected cancel response: {e}") from e

        if not ack.success:
            raise CancelRequestError(ack.message or "Unable to cancel query")
        logger.info(f"Cancel acknowledged for run {run_id}")
        return ack

    async def execute(self, submission: QuerySubmission, estimated_cost: float, estimated_duration: int) -> ExecuteAck:
        """Submit a query for execution.

        Raises:
            ApiError: If the request fails or the response is malformed
        """
        payload = submission.model_dump(mode="json", by_alias=True, exclude_none=True)
        payload["estimatedCost"] = estimated_cost
        payload["estimatedDuration"] = estimated_duration

        try:
            response = await self._client.post("/api/query/execute", json=payload)
        except httpx.HTTPError as e:
            raise ApiError(f"Failed to run query: {e}") from e

        if response.status_code >= 400:
            raise ApiError(response.text or "Failed to run query", status_code=response.status_code)

        try:
            ack = ExecuteAck.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise ApiError(f"Unexpected execute response: {e}") from e

        logger.info(f"Query submitted as {ack.query_id}")
        return ack
