"""ADLENS — Meta API Client.

Handles authentication, rate-limit backoff, and pagination.
"""

import asyncio
from typing import Any, Dict, List, Optional

import httpx

from adlens.config import settings
from adlens.core.errors import AdlensError, ConfigurationError
from adlens.core.logging import get_logger

logger = get_logger("meta.client")

RETRY_BASE_DELAY = 2  # seconds


def meta_base() -> str:
    return f"{settings.meta_base_url}/{settings.meta_api_version}"


class MetaAPIError(AdlensError):
    """Raised when Meta API returns an error."""

    def __init__(self, message: str, status_code: int = 0, error_code: int = 0):
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(message)


def _error_from_body(body: Any) -> Optional[Dict[str, Any]]:
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return body["error"]
    return None


class MetaClient:
    """Async HTTP client for Meta Marketing API."""

    def __init__(
        self,
        access_token: str | None = None,
        ad_account_id: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.access_token = access_token or settings.meta_access_token
        self.ad_account_id = ad_account_id or settings.meta_ad_account_id
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._sleep = asyncio.sleep

    @property
    def account_path(self) -> str:
        """Graph path of the ad account, always carrying the act_ prefix."""
        account = self.ad_account_id.strip()
        return account if account.startswith("act_") else f"act_{account}"

    def check_configured(self) -> None:
        if not self.access_token:
            raise ConfigurationError(
                "Meta access token is not configured (set META_ACCESS_TOKEN)"
            )
        if not self.ad_account_id:
            raise ConfigurationError(
                "Meta ad account is not configured (set META_AD_ACCOUNT_ID)"
            )

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=30.0, transport=self._transport)
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    # ── Core Request Method ──

    async def _request(
        self,
        method: str,
        url: str,
        params: Dict[str, Any] | None = None,
    ) -> Dict[str, Any]:
        """Make a request, backing off only when rate limited.

        Any other failure is raised at once as MetaAPIError carrying the
        upstream message; retrying is left to the caller.
        """
        if params is not None:
            params = {**params, "access_token": self.access_token}

        client = await self._get_client()
        attempts = max(settings.meta_rate_limit_retries, 0) + 1

        for attempt in range(1, attempts + 1):
            try:
                resp = await client.request(method, url, params=params)
            except httpx.RequestError as e:
                raise MetaAPIError(f"Connection to Meta failed: {e}") from e

            if resp.status_code == 429 and attempt < attempts:
                wait = RETRY_BASE_DELAY * (2 ** (attempt - 1))
                logger.warning(
                    f"Rate limited (429). Retrying in {wait}s (attempt {attempt}/{attempts})",
                    extra={"status_code": 429},
                )
                await self._sleep(wait)
                continue

            try:
                body = resp.json()
            except ValueError:
                body = None

            error = _error_from_body(body)
            if error is not None:
                raise MetaAPIError(
                    error.get("message", "Unknown Meta API error"),
                    resp.status_code,
                    error.get("code", 0),
                )
            if resp.is_error:
                raise MetaAPIError(
                    f"Meta API returned HTTP {resp.status_code}", resp.status_code
                )
            if not isinstance(body, dict):
                raise MetaAPIError("Meta API returned a non-JSON response")
            return body

    # ── Pagination ──

    async def _paginated_get(
        self,
        url: str,
        params: Dict[str, Any] | None = None,
        max_pages: int | None = None,
    ) -> List[Dict[str, Any]]:
        """Fetch every page of a paginated endpoint, following cursors.

        A cursor chain longer than `max_pages` is treated as an API fault
        rather than truncated, so a partial result is never returned.
        """
        max_pages = max_pages or settings.meta_max_pages
        all_data: List[Dict[str, Any]] = []
        result = await self._request("GET", url, params or {})
        pages = 1

        while True:
            all_data.extend(result.get("data") or [])
            next_url = (result.get("paging") or {}).get("next")
            if not next_url:
                break
            if pages >= max_pages:
                raise MetaAPIError(
                    f"Pagination for {url} did not end within {max_pages} pages"
                )
            # The cursor URL already carries every query parameter
            result = await self._request("GET", next_url)
            pages += 1

        logger.info(
            f"Fetched {len(all_data)} records over {pages} page(s) from {url}",
            extra={"endpoint": url, "rows": len(all_data)},
        )
        return all_data

    # ── Token Validation ──

    async def validate_token(self) -> Dict[str, Any]:
        """Check if the access token is valid and return metadata."""
        url = f"{meta_base()}/debug_token"
        params = {"input_token": self.access_token}
        result = await self._request("GET", url, params)
        token_data = result.get("data", {})
        return {
            "valid": token_data.get("is_valid", False),
            "expires_at": token_data.get("expires_at", 0),
            "scopes": token_data.get("scopes", []),
            "app_id": token_data.get("app_id", ""),
        }

    # ── Account Info ──

    async def get_account_info(self) -> Dict[str, Any]:
        """Fetch ad account details."""
        url = f"{meta_base()}/{self.account_path}"
        params = {"fields": "name,account_id,account_status,currency,timezone_name"}
        return await self._request("GET", url, params)
