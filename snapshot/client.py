"""
Airtable REST client with bearer authentication, throttling and retry logic.

This module provides:
- A global minimum spacing between requests (see RequestThrottle)
- Exponential backoff retry for 429, 5xx, timeouts and network errors
- Mapping of HTTP failures onto the core.exceptions hierarchy
"""

import httpx
import asyncio
from typing import List, Dict, Any, Optional
from core.config import settings
from core.exceptions import (
    ConfigurationError,
    SourceAPIError,
    NetworkError,
    RateLimitError,
    AuthenticationError,
    ResourceNotFoundError,
)
from schemas.source import BaseSummary, RecordPage, SourceSchema
from snapshot.throttle import RequestThrottle
import logging

logger = logging.getLogger(__name__)


class AirtableClient:
    """
    Thin async client for the endpoints the snapshot engine needs.

    Attributes:
        max_retries: Maximum number of attempts per request (default: 3)
        retry_delay: Initial retry delay in seconds (default: 1.0)
        timeout: Request timeout in seconds (default: 30.0)
        throttle: Spacing applied before every request, retries included

    Usage:
        async with AirtableClient(api_key) as client:
            schema = await client.get_base_schema("appXXXX")
    """

    def __init__(
        self,
        api_key: Optional[str],
        base_url: Optional[str] = None,
        throttle: Optional[RequestThrottle] = None,
        max_retries: Optional[int] = None,
        retry_delay: Optional[float] = None,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        if not api_key:
            raise ConfigurationError("API Key is required.")

        self.api_key = api_key
        self.base_url = (base_url or settings.AIRTABLE_API_BASE_URL).rstrip("/")
        self.throttle = throttle or RequestThrottle(settings.AIRTABLE_RATE_LIMIT_DELAY)
        self.max_retries = max(1, max_retries if max_retries is not None else settings.MAX_RETRIES)
        self.retry_delay = retry_delay if retry_delay is not None else settings.RETRY_DELAY
        self.timeout = timeout if timeout is not None else settings.HTTP_TIMEOUT

        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=self.timeout)

    async def __aenter__(self) -> "AirtableClient":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()

    async def aclose(self):
        if self._owns_client:
            await self._client.aclose()

    @property
    def headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    async def list_bases(self) -> List[BaseSummary]:
        """All bases the credential can see, following the offset cursor"""
        bases: List[BaseSummary] = []
        offset = None

        while True:
            params = {"offset": offset} if offset else {}
            data = await self.get_json("/meta/bases", params)
            bases.extend(BaseSummary.model_validate(b) for b in data.get("bases") or [])
            offset = data.get("offset")
            if not offset:
                break

        logger.info(f"Listed {len(bases)} bases")
        return bases

    async def get_base_schema(self, base_id: str) -> SourceSchema:
        """Tables and fields of one base"""
        data = await self.get_json(f"/meta/bases/{base_id}/tables")
        return SourceSchema.model_validate({
            "base_id": base_id,
            "name": data.get("name"),
            "tables": data.get("tables") or [],
        })

    async def list_records(
        self,
        base_id: str,
        table_id: str,
        offset: Optional[str] = None,
        page_size: Optional[int] = None
    ) -> RecordPage:
        """One page of records; RecordPage.offset is the cursor for the next page"""
        params: Dict[str, Any] = {"pageSize": page_size or settings.AIRTABLE_PAGE_SIZE}
        if offset:
            params["offset"] = offset
        data = await self.get_json(f"/{base_id}/{table_id}", params)
        return RecordPage.model_validate(data)

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        response = await self._make_request_with_retry(url, params or {})

        try:
            data = response.json()
        except ValueError as e:
            raise SourceAPIError(
                "Failed to parse JSON response",
                context={
                    "api_url": url,
                    "status_code": response.status_code,
                    "response_body": response.text[:500]
                },
                original_exception=e
            )

        if not isinstance(data, dict):
            raise SourceAPIError(
                "Unexpected response shape",
                context={"api_url": url, "response_body": response.text[:500]}
            )
        return data

    def _backoff(self, attempt: int) -> float:
        return self.retry_delay * (2 ** attempt)

    async def _make_request_with_retry(self, url: str, params: Dict[str, Any]) -> httpx.Response:
        """
        Make a GET request with throttling, retry logic and exponential backoff.

        Raises:
            AuthenticationError: On HTTP 401/403
            ResourceNotFoundError: On HTTP 404
            RateLimitError: When still rate limited after max retries
            NetworkError: On server or transport errors after max retries
            SourceAPIError: On any other HTTP error
        """
        for attempt in range(self.max_retries):
            await self.throttle.wait()
            is_last = attempt == self.max_retries - 1

            try:
                logger.debug(f"Request attempt {attempt + 1}/{self.max_retries} to {url}")
                response = await self._client.get(
                    url,
                    headers=self.headers,
                    params=params,
                    timeout=self.timeout
                )

            except httpx.TimeoutException as e:
                if is_last:
                    raise NetworkError(
                        f"Request timeout after {self.max_retries} attempts",
                        context={"api_url": url, "timeout": self.timeout, "retry_count": attempt + 1},
                        original_exception=e
                    )
                delay = self._backoff(attempt)
                logger.warning(f"Request timeout. Retrying in {delay} seconds")
                await asyncio.sleep(delay)
                continue

            except httpx.TransportError as e:
                if is_last:
                    raise NetworkError(
                        f"Network error after {self.max_retries} attempts",
                        context={"api_url": url, "retry_count": attempt + 1},
                        original_exception=e
                    )
                delay = self._backoff(attempt)
                logger.warning(f"Network error. Retrying in {delay} seconds: {str(e)}")
                await asyncio.sleep(delay)
                continue

            status = response.status_code
            context = {
                "status_code": status,
                "api_url": url,
                "retry_count": attempt + 1,
            }

            if status in (401, 403):
                raise AuthenticationError(
                    self._error_message(response, f"Authentication failed for {url}"),
                    context=context
                )

            if status == 404:
                raise ResourceNotFoundError(
                    self._error_message(response, f"Resource not found: {url}"),
                    context=context
                )

            if status == 429:
                retry_after = self._retry_after(response, attempt)
                if is_last:
                    raise RateLimitError(
                        f"Rate limit exceeded for {url}",
                        context=context,
                        retry_after=retry_after
                    )
                logger.warning(f"Rate limited. Retrying after {retry_after} seconds")
                await asyncio.sleep(retry_after)
                continue

            if status >= 500:
                if is_last:
                    raise NetworkError(
                        f"Server error after {self.max_retries} attempts",
                        context={**context, "response_body": response.text[:500]}
                    )
                delay = self._backoff(attempt)
                logger.warning(
                    f"Server error {status}. "
                    f"Retrying in {delay} seconds (attempt {attempt + 1}/{self.max_retries})"
                )
                await asyncio.sleep(delay)
                continue

            if status >= 400:
                raise SourceAPIError(
                    self._error_message(response, f"Request failed with status {status}"),
                    context={**context, "response_body": response.text[:500]}
                )

            return response

        raise SourceAPIError("Max retries exceeded", context={"api_url": url})

    def _retry_after(self, response: httpx.Response, attempt: int) -> float:
        header = response.headers.get("Retry-After")
        if header:
            try:
                return float(header)
            except ValueError:
                pass
        return self._backoff(attempt)

    @staticmethod
    def _error_message(response: httpx.Response, default: str) -> str:
        """Airtable reports errors as {"error": {"type", "message"}} or {"error": "TYPE"}"""
        try:
            error = response.json().get("error")
        except (ValueError, AttributeError):
            return default
        if isinstance(error, dict):
            return error.get("message") or error.get("type") or default
        if isinstance(error, str):
            return error
        return default
