"""REST client for the price tracker backend."""

import logging

import requests

from price_tracker.config import DEFAULT_API_URL
from price_tracker.errors import BackendError, CheckError, FetchError
from price_tracker.models import PricePoint, Product, ProductDraft

logger = logging.getLogger(__name__)

JSON_HEADERS = {"Content-Type": "application/json"}


class BackendClient:
    """
    Thin wrapper over the backend's product endpoints.

    Calls are blocking; the async check flow runs them in a worker thread.
    Every failure (network error, non-2xx status, unreadable body) is raised
    as a BackendError subclass chosen by the caller.
    """

    def __init__(self, api_url: str = DEFAULT_API_URL, timeout: float = 15.0):
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout

    def _request(
        self,
        method: str,
        path: str,
        error_cls: type[BackendError] = BackendError,
        **kwargs,
    ) -> requests.Response:
        url = f"{self.api_url}{path}"
        logger.debug("%s %s", method, url)
        try:
            resp = requests.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise error_cls(f"{method} {path} failed: {e}") from e

        if not resp.ok:
            detail = resp.text.strip() or resp.reason
            raise error_cls(
                f"{method} {path} returned {resp.status_code}: {detail}",
                status_code=resp.status_code,
            )
        return resp

    @staticmethod
    def _json(resp: requests.Response, error_cls: type[BackendError]):
        try:
            return resp.json()
        except ValueError as e:
            raise error_cls(f"Invalid JSON from {resp.url}") from e

    def list_products(self) -> list[Product]:
        """GET /products."""
        resp = self._request("GET", "/products", FetchError)
        return [Product.from_api(item) for item in self._json(resp, FetchError)]

    def get_product(self, product_id: int) -> Product:
        """GET /products/{id}: current snapshot, read before a check."""
        resp = self._request("GET", f"/products/{product_id}", FetchError)
        return Product.from_api(self._json(resp, FetchError))

    def check_product(self, product_id: int) -> Product:
        """POST /products/{id}/check: triggers a live price fetch, returns the updated snapshot."""
        resp = self._request("POST", f"/products/{product_id}/check", CheckError)
        return Product.from_api(self._json(resp, CheckError))

    def create_product(self, draft: ProductDraft) -> Product:
        resp = self._request("POST", "/products", json=draft.to_payload(), headers=JSON_HEADERS)
        return Product.from_api(self._json(resp, BackendError))

    def update_product(self, product_id: int, draft: ProductDraft) -> Product:
        resp = self._request(
            "PUT", f"/products/{product_id}", json=draft.to_payload(), headers=JSON_HEADERS
        )
        return Product.from_api(self._json(resp, BackendError))

    def delete_product(self, product_id: int) -> str:
        """DELETE /products/{id}. The backend answers with plain text."""
        resp = self._request("DELETE", f"/products/{product_id}", headers=JSON_HEADERS)
        return resp.text

    def get_price_history(self, product_id: int) -> list[PricePoint]:
        """GET /products/{id}/history, newest first."""
        resp = self._request("GET", f"/products/{product_id}/history", FetchError)
        return [PricePoint.from_api(item) for item in self._json(resp, FetchError)]

    def send_test_email(self, product_id: int) -> str:
        """POST /products/{id}/test-email: the backend mails a sample price drop alert."""
        resp = self._request("POST", f"/products/{product_id}/test-email")
        return resp.text
