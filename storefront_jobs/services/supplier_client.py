"""Supplier catalog API client."""

import logging
import time
from typing import Any, Dict, Optional

import httpx

from storefront_jobs.config import settings
from storefront_jobs.exceptions import SupplierError, SupplierRateLimitError, SupplierTransientError
from storefront_jobs.schemas.supplier import ProductPage

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = [500, 502, 503, 504]


class SupplierClient:
    """Client for the supplier products API.

    Calls are not retried here; the stage executors own retry and rate
    limiting so they can account for each item separately.
    """

    def __init__(self, http_client: Optional[httpx.Client] = None):
        """Initialize the supplier client."""
        self.base_url = settings.SUPPLIER_PROXY_URL or settings.SUPPLIER_BASE_URL
        self.token = settings.SUPPLIER_API_TOKEN
        self.proxy_key = settings.SUPPLIER_PROXY_KEY if settings.SUPPLIER_PROXY_URL else ""
        self.http = http_client or httpx.Client(timeout=settings.SUPPLIER_TIMEOUT)

    def _build_headers(self) -> Dict[str, str]:
        """Build HTTP headers for the supplier API."""
        headers = {
            "Content-Type": "application/json",
            "dropi-integration-key": self.token,
        }
        if self.proxy_key:
            headers["x-proxy-key"] = self.proxy_key
        return headers

    def _request(self, method: str, endpoint: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = f"{self.base_url}{endpoint}"
        started = time.monotonic()

        try:
            response = self.http.request(method, url, headers=self._build_headers(), json=payload)
        except httpx.TimeoutException as e:
            raise SupplierTransientError(f"Timeout calling {method} {endpoint}: {e}") from e
        except httpx.TransportError as e:
            raise SupplierTransientError(f"Transport error calling {method} {endpoint}: {e}") from e

        duration_ms = int((time.monotonic() - started) * 1000)
        logger.debug(f"{method} {url} - {response.status_code} ({duration_ms}ms)")

        if response.status_code == 429:
            logger.warning(f"Rate limited by supplier on {endpoint}")
            raise SupplierRateLimitError("429 - Too Many Attempts", status_code=429)

        if response.status_code in RETRYABLE_STATUS_CODES:
            logger.warning(f"Retryable error {response.status_code} from supplier on {endpoint}")
            raise SupplierTransientError(
                f"Supplier API error: {response.status_code}", status_code=response.status_code
            )

        if response.is_error:
            raise SupplierError(
                f"Supplier API error: {response.status_code} - {response.text[:500]}",
                status_code=response.status_code,
            )

        body = response.json()
        if not body.get("isSuccess"):
            raise SupplierError(f"Supplier API returned isSuccess: false. Message: {body.get('message', 'N/A')}")
        return body

    def list_products(self, page_size: int, start: int, category_id: int) -> ProductPage:
        """
        Fetch one page of the product listing.

        Args:
            page_size: Products per page
            start: Offset of the first product
            category_id: Supplier category to list

        Returns:
            ProductPage with the total count and the page's products
        """
        body = self._request(
            "POST",
            "/products/index",
            {"pageSize": page_size, "startData": start, "category_id": category_id},
        )
        return ProductPage(count=body.get("count") or 0, objects=body.get("objects") or [])

    def get_product_detail(self, supplier_id: int) -> Dict[str, Any]:
        """Fetch the detail payload (description, photos, stock) of one product."""
        body = self._request("GET", f"/products/v2/{supplier_id}")
        detail = body.get("objects")
        if not detail:
            raise SupplierError(f"Empty detail for product {supplier_id}")
        return detail

    def close(self):
        self.http.close()
