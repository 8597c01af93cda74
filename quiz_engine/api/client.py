"""Async client for the e-learning backend (test fetch, attempt submission)."""
import asyncio
import logging
from typing import Any, Dict, List, Optional

import aiohttp

from quiz_engine.config import settings

from .endpoints import DEFAULT_HEADERS, QUIZ_ATTEMPTS, TEST_BY_ID
from .exceptions import InvalidResponseError, NetworkError, ServerError, ValidationError
from .models import (
    AttemptResult, QuizAttempt, TestDefinition,
    attempt_from_payload, attempt_result_from_payload, test_from_payload,
)

logger = logging.getLogger(__name__)


class QuizClient:
    """Async client for the quiz endpoints via aiohttp."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """
        Args:
            base_url: Backend root, defaults to ``settings.API_BASE_URL``
            token: Bearer token, defaults to ``settings.API_TOKEN``
            timeout: Total request timeout in seconds
            session: Externally owned aiohttp session (not closed by ``close``)
        """
        self.base_url = (base_url or settings.API_BASE_URL).rstrip("/")
        self.token = settings.API_TOKEN if token is None else token
        self.timeout = timeout or settings.API_TIMEOUT
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "QuizClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _headers(self) -> Dict[str, str]:
        headers = dict(DEFAULT_HEADERS)
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )
            self._owns_session = True
        return self._session

    async def _request(self, method: str, path: str, payload: Optional[dict] = None) -> Any:
        """
        Perform a request and return the decoded JSON body.

        Raises:
            ValidationError: HTTP 422 with structured field errors
            ServerError: any other error status
            NetworkError: no response received
        """
        url = f"{self.base_url}{path}"
        session = self._get_session()
        try:
            async with session.request(method, url, json=payload, headers=self._headers()) as resp:
                body = await self._read_json(resp)
                if resp.status == 422:
                    body = body if isinstance(body, dict) else {}
                    raise ValidationError(
                        body.get("message") or "The given data was invalid",
                        errors=body.get("errors"),
                        status=resp.status,
                    )
                if resp.status >= 400:
                    message = body.get("message") if isinstance(body, dict) else None
                    raise ServerError(message or f"HTTP {resp.status}", status=resp.status)
                return body
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error("%s %s failed without response: %s", method, url, e)
            raise NetworkError(str(e) or type(e).__name__)

    @staticmethod
    async def _read_json(resp) -> Any:
        try:
            return await resp.json(content_type=None)
        except ValueError:
            return None

    async def get_test(self, test_id) -> TestDefinition:
        """
        Fetch a test definition.

        Raises:
            InvalidResponseError: body is not a usable test (e.g. no questions)
            ServerError, NetworkError: request failed
        """
        body = await self._request("GET", TEST_BY_ID.format(test_id=test_id))
        if not body:
            raise InvalidResponseError(f"Test {test_id} not found", status=404)
        return test_from_payload(body)

    async def submit_attempt(self, payload: dict) -> AttemptResult:
        """
        Submit ``{test_id, answers}`` and return the graded result.

        Raises:
            ValidationError: backend rejected the payload
            InvalidResponseError: success response without the ``data`` envelope
            ServerError, NetworkError: request failed
        """
        body = await self._request("POST", QUIZ_ATTEMPTS, payload)
        if not isinstance(body, dict) or not body.get("data"):
            raise InvalidResponseError("Invalid response structure for submit_attempt")
        return attempt_result_from_payload(body["data"])

    async def get_attempts(self) -> List[QuizAttempt]:
        """Get the current user's attempt history."""
        body = await self._request("GET", QUIZ_ATTEMPTS)
        data = body.get("data") if isinstance(body, dict) else None
        if data is None:
            return []
        if not isinstance(data, list):
            raise InvalidResponseError("Invalid response structure for get_attempts")
        return [attempt_from_payload(item) for item in data]

    async def close(self):
        """Close the aiohttp session if this client created it."""
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None
