"""HTTP transport for the Leonardo.ai generations endpoint."""

from typing import Any, Protocol

import httpx
import structlog
from opentelemetry import trace

from illustrator.exceptions import TransportError
from illustrator.models import GenerationPayload

log = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)


class GenerationTransport(Protocol):
    """
    Defines the two remote calls the generation client needs.
    Implementations raise TransportError for network failures and non-2xx
    responses and return the decoded JSON body otherwise.
    """

    async def submit(self, payload: GenerationPayload) -> dict[str, Any]: ...

    async def fetch(self, generation_id: str) -> dict[str, Any]: ...

    async def aclose(self) -> None: ...


class HttpxTransport:
    """Talks to the generations endpoint with a pooled httpx.AsyncClient."""

    def __init__(
        self,
        api_url: str,
        api_key: str,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        self._url = api_url.rstrip("/")
        self._auth = {"authorization": f"Bearer {api_key}"}
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def _request(
        self,
        method: str,
        url: str,
        *,
        json: dict[str, Any] | None = None,
        headers: dict[str, str],
    ) -> dict[str, Any]:
        with tracer.start_as_current_span(
            f"leonardo:{method}",
            attributes={"http.method": method, "http.url": url},
        ) as span:
            try:
                response = await self._client.request(
                    method, url, json=json, headers={**headers, **self._auth}
                )
                span.set_attribute("http.status_code", response.status_code)
                response.raise_for_status()

            except httpx.HTTPStatusError as e:
                span.set_attribute("error", True)
                span.record_exception(e)
                try:
                    payload = e.response.json()
                except ValueError:
                    payload = e.response.text or None

                log.warning(
                    "Generation API returned an error status",
                    method=method,
                    url=url,
                    status_code=e.response.status_code,
                    payload=payload,
                )
                raise TransportError(
                    detail=f"Generation API returned status {e.response.status_code}",
                    status_code=e.response.status_code,
                    payload=payload,
                ) from e

            except httpx.RequestError as e:
                span.set_attribute("error", True)
                span.record_exception(e)
                log.error(
                    "Generation API network error",
                    method=method,
                    url=url,
                    error=str(e),
                )
                raise TransportError(
                    detail=f"Network error communicating with the generation API: {e.__class__.__name__}",
                ) from e

            try:
                return response.json()
            except ValueError as e:
                span.set_attribute("error", True)
                log.error("Generation API returned a non-JSON body", url=url)
                raise TransportError(
                    detail="Generation API returned a non-JSON body",
                    status_code=response.status_code,
                    payload=response.text or None,
                ) from e

    async def submit(self, payload: GenerationPayload) -> dict[str, Any]:
        return await self._request(
            "POST",
            self._url,
            json=payload.model_dump(by_alias=True),
            headers={
                "accept": "application/json",
                "content-type": "application/json",
            },
        )

    async def fetch(self, generation_id: str) -> dict[str, Any]:
        return await self._request(
            "GET",
            f"{self._url}/{generation_id}",
            headers={"accept": "application/json"},
        )

    async def aclose(self) -> None:
        await self._client.aclose()
