"""
USDA FoodData Central connector.

Searches FoodData Central (https://fdc.nal.usda.gov/) for foods. Results are
returned as the raw food dictionaries from the API; the tracker reads
description, brandOwner/brandName, servingSize, servingSizeUnit,
householdServingFullText, foodPortions and foodNutrients from them.

The API key comes from USDA_API_KEY (defaults to the rate-limited DEMO_KEY).
"""

import logging
from typing import Any, Dict, List, Optional

from api.config import UsdaConfig

from .base import BaseConnector

logger = logging.getLogger(__name__)

# Results are shown 5 at a time; "load more" reveals 5 more
RESULTS_PAGE_SIZE = 5


class UsdaConnector(BaseConnector):
    """Connector for the FoodData Central foods search endpoint."""
    source = "usda"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> None:
        """
        Initialize the connector.

        Args:
            api_key: API key (optional, reads USDA_API_KEY if not provided)
            base_url: API base URL (optional, reads USDA_BASE_URL if not provided)
            timeout: Request timeout in seconds (optional, reads FOOD_API_TIMEOUT)
        """
        super().__init__(base_url or UsdaConfig.get_base_url(), timeout)
        self.api_key = api_key or UsdaConfig.get_api_key()

    def search_foods(
        self,
        query: str,
        page_size: Optional[int] = None,
        page_number: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Search foods by free text.

        Args:
            query: Search text (e.g., "greek yogurt")
            page_size: Number of results per API page (API default when None)
            page_number: API page number, 1-indexed (API default when None)

        Returns:
            List of raw food dictionaries (empty for a blank query or no matches)

        Raises:
            ConnectorError: If the request fails
        """
        term = query.strip()
        if not term:
            return []

        params: Dict[str, Any] = {"query": term, "api_key": self.api_key}
        if page_size:
            params["pageSize"] = page_size
        if page_number:
            params["pageNumber"] = page_number

        logger.debug("Searching FoodData Central for %r", term)
        data = self._get_json("/foods/search", params=params)
        foods = data.get("foods") or []
        return [food for food in foods if isinstance(food, dict)]
