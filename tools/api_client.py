"""Async HTTP client for the tailoring backend REST API."""

from __future__ import annotations

import logging
from typing import Any, Optional, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from config.settings import Settings, get_settings
from tools.errors import ServiceError

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)


def parse_record(operation: str, model: type[RecordT], data: Any) -> RecordT:
    """Validate one backend record; a malformed record is a ServiceError."""
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        logger.warning("[TailorApi] %s returned a malformed %s: %s", operation, model.__name__, exc)
        raise ServiceError(operation, f"Malformed {model.__name__} in backend response") from exc


class TailorApiClient:
    """
    Thin wrapper around ``httpx.AsyncClient``.

    The backend answers with an envelope ``{"success": bool, "data": ...,
    "message": str}``. ``request`` unwraps ``data`` and turns transport
    failures, non-2xx responses and ``success: false`` into ServiceError.
    Timeouts come from settings; no retries are done here.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        settings: Optional[Settings] = None,
    ):
        """
        Initialize client.

        Args:
            base_url: API root (defaults to settings.api_base_url)
            token: Bearer token (defaults to settings.api_token)
            timeout: Request timeout in seconds
            transport: Custom httpx transport (tests use httpx.MockTransport)
            settings: Settings instance (defaults to get_settings())
        """
        settings = settings or get_settings()
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.token = token if token is not None else settings.api_token
        self.timeout = timeout or settings.request_timeout
        self.transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def request(
        self,
        operation: str,
        method: str,
        path: str,
        *,
        params: Optional[dict[str, Any]] = None,
        json: Any = None,
    ) -> Any:
        """
        Perform a request and return the unwrapped ``data`` field.

        Args:
            operation: Name used in logs and errors, e.g. "customers.search"
            method: HTTP method
            path: Path relative to the API root
            params: Query parameters
            json: JSON body

        Returns:
            Envelope ``data`` (or the whole body when there is no envelope)

        Raises:
            ServiceError: On transport errors, HTTP errors or ``success: false``
        """
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self.transport, headers=self._headers()
            ) as client:
                response = await client.request(method, url, params=params, json=json)
        except httpx.HTTPError as exc:
            logger.warning("[TailorApi] %s failed: %s", operation, exc)
            raise ServiceError(operation, f"Backend unreachable: {exc}") from exc

        body = self._parse(response)
        if response.is_error:
            message = self._message(body) or response.reason_phrase or "Request failed"
            logger.warning("[TailorApi] %s -> HTTP %s: %s", operation, response.status_code, message)
            raise ServiceError(operation, message, status_code=response.status_code)

        if isinstance(body, dict) and body.get("success") is False:
            message = self._message(body) or "Request failed"
            logger.warning("[TailorApi] %s rejected: %s", operation, message)
            raise ServiceError(operation, message, status_code=response.status_code)

        if isinstance(body, dict) and "data" in body:
            return body["data"]
        return body

    @staticmethod
    def _parse(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return {"message": response.text}

    @staticmethod
    def _message(body: Any) -> Optional[str]:
        if isinstance(body, dict):
            return body.get("message") or body.get("error")
        return None
