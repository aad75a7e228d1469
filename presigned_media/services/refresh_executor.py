"""Single round trip to the backend's refresh-url endpoint."""

from __future__ import annotations

import inspect
import logging
from typing import Awaitable, Callable, Union

import httpx
from pydantic import ValidationError

from presigned_media.errors import NetworkError, ProtocolError
from presigned_media.models.references import EntityAssociation
from presigned_media.models.refresh import RefreshedUrl, RefreshEnvelope
from presigned_media.observability.redaction import redact_signed_url

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_PATH = "/api/v1/files/refresh-url"

TokenProvider = Callable[[], Union[str, None, Awaitable[str | None]]]


def static_token_provider(token: str | None) -> TokenProvider:
    """Token provider that always returns the same token."""

    def _provider() -> str | None:
        return token

    return _provider


def _no_token() -> str | None:
    return None


class RefreshExecutor:
    """Performs the refresh request and parses the response envelope.

    Holds no per-reference state; timers and bookkeeping live in the tracker.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        refresh_path: str = DEFAULT_REFRESH_PATH,
        token_provider: TokenProvider = _no_token,
    ) -> None:
        """Initialize the executor.

        Args:
            client: HTTP client; its base_url points at the API host.
            refresh_path: Path of the refresh endpoint.
            token_provider: Callable (sync or async) returning a bearer token or None.
        """
        self._client = client
        self._refresh_path = refresh_path
        self._token_provider = token_provider

    async def _token(self) -> str | None:
        token = self._token_provider()
        if inspect.isawaitable(token):
            token = await token
        return token or None

    async def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        token = await self._token()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def execute(
        self,
        storage_key: str,
        association: EntityAssociation | None = None,
    ) -> RefreshedUrl:
        """Request a freshly signed URL for ``storage_key``.

        Args:
            storage_key: Canonical object key.
            association: Optional owning record; passed so the backend can
                persist the new URL against it.

        Returns:
            The new URL and its validity window.

        Raises:
            NetworkError: Transport failure or non-2xx status.
            ProtocolError: Malformed or unsuccessful response envelope.
        """
        params = {"fileKey": storage_key}
        if association is not None:
            params.update(association.as_query_params())

        try:
            response = await self._client.get(
                self._refresh_path,
                params=params,
                headers=await self._headers(),
            )
        except httpx.HTTPError as e:
            raise NetworkError(f"Failed to refresh URL: {e}") from e

        if not response.is_success:
            reason = response.reason_phrase or f"HTTP {response.status_code}"
            raise NetworkError(
                f"Failed to refresh URL: {reason}",
                status_code=response.status_code,
            )

        try:
            envelope = RefreshEnvelope.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise ProtocolError(f"Invalid response from server: {e}") from e

        if not envelope.success or envelope.data is None or not envelope.data.presigned_url:
            raise ProtocolError(envelope.message or "Invalid response from server")

        refreshed = RefreshedUrl(
            file_key=envelope.data.file_key or storage_key,
            url=envelope.data.presigned_url,
            expires_in=envelope.data.expires_in,
        )
        logger.info(
            "Refreshed signed URL for %s (expires_in=%s): %s",
            storage_key,
            refreshed.expires_in,
            redact_signed_url(refreshed.url),
        )
        return refreshed
