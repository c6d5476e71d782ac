"""
Base connector class for food-data integrations.

This module defines the interface shared by the food-data connectors and the
errors they raise. Connectors make a single keyed GET request with a timeout;
there is no retry.

All connectors must:
- Implement the source attribute (e.g., "usda", "openfoodfacts")
- Raise ConnectorError when the remote API cannot be reached or answers with an error
"""

import logging
from typing import Any, Dict, Optional

import requests

from api.config import get_food_api_timeout

logger = logging.getLogger(__name__)


class ConnectorError(RuntimeError):
    """The food-data API could not be reached or returned an error."""


class ProductNotFoundError(ConnectorError):
    """The requested product does not exist in the remote database."""


class BaseConnector:
    """
    Base class for food-data connectors.

    Attributes:
        source: Identifier for the data source (e.g., "usda", "openfoodfacts")
        base_url: API base URL without trailing slash
        timeout: Request timeout in seconds
    """
    source: str

    def __init__(self, base_url: str, timeout: Optional[float] = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout if timeout is not None else get_food_api_timeout()

    def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        GET base_url + path and decode the JSON body.

        Args:
            path: Path starting with "/"
            params: Query parameters

        Returns:
            Decoded JSON object

        Raises:
            ProductNotFoundError: On HTTP 404
            ConnectorError: On network errors, other HTTP errors or a non-JSON body
        """
        url = f"{self.base_url}{path}"
        try:
            response = requests.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning(f"{self.source} request failed: {e}")
            raise ConnectorError(f"{self.source} request failed: {e}") from e

        if response.status_code == 404:
            raise ProductNotFoundError(f"{self.source}: not found")
        if response.status_code >= 400:
            logger.warning(f"{self.source} returned HTTP {response.status_code}")
            raise ConnectorError(f"{self.source} returned HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise ConnectorError(f"{self.source} returned invalid JSON") from e
        if not isinstance(data, dict):
            raise ConnectorError(f"{self.source} returned an unexpected response")
        return data
