"""ADLENS — Spreadsheet Store Client.

Reads and replaces the canonical dataset through the spreadsheet web app.
GET returns the whole sheet as a grid; POST replaces the named sheet.
"""

from typing import Any, List, Optional

import httpx

from adlens.config import settings
from adlens.core.errors import ConfigurationError, StoreError
from adlens.core.logging import get_logger

logger = get_logger("store.client")

PLACEHOLDER_MARKERS = ("your-web-app-url", "script.google.com/macros/s/...")


def check_store_url(url: str) -> str:
    """Reject an unset or placeholder endpoint before any request goes out."""
    if not url or not url.strip():
        raise ConfigurationError("Store URL is not configured (set STORE_URL)")
    if any(marker in url for marker in PLACEHOLDER_MARKERS):
        raise ConfigurationError(
            "Store URL is still the placeholder value; deploy the web app and set STORE_URL"
        )
    return url.strip()


class StoreClient:
    """Async HTTP client for the spreadsheet store web app."""

    def __init__(
        self,
        url: str | None = None,
        sheet_title: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.url = url if url is not None else settings.store_url
        self.sheet_title = sheet_title or settings.store_sheet_title
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=settings.store_timeout,
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def _request(self, method: str, **kwargs: Any) -> dict:
        url = check_store_url(self.url)
        client = await self._get_client()
        try:
            resp = await client.request(method, url, **kwargs)
            resp.raise_for_status()
            body = resp.json()
        except httpx.HTTPStatusError as e:
            raise StoreError(
                f"Store returned HTTP {e.response.status_code}",
                e.response.status_code,
            ) from e
        except httpx.RequestError as e:
            raise StoreError(f"Store unreachable: {e}") from e
        except ValueError as e:
            raise StoreError("Store returned a non-JSON response") from e

        if not isinstance(body, dict):
            raise StoreError("Store returned an unexpected payload")
        if body.get("status") != "success":
            raise StoreError(body.get("message") or "Store reported an unknown error")
        return body

    async def fetch_grid(self) -> List[List[Any]]:
        """Fetch the whole dataset sheet as a header-first grid."""
        body = await self._request("GET")
        data = body.get("data")
        if not isinstance(data, list):
            raise StoreError("Store response carried no data grid")
        logger.info(f"Fetched {len(data)} rows from store", extra={"rows": len(data)})
        return data

    async def replace_sheet(self, values: List[List[Any]]) -> str:
        """Replace the dataset sheet with the given grid."""
        if not values:
            raise StoreError("No data provided")
        payload = {"sheetTitle": self.sheet_title, "values": values}
        body = await self._request("POST", json=payload)
        logger.info(
            f"Replaced sheet '{self.sheet_title}' with {len(values) - 1} rows",
            extra={"rows": len(values) - 1},
        )
        return body.get("message", "")
