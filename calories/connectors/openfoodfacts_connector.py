"""
Open Food Facts connector.

Looks up packaged products by barcode in the Open Food Facts database
(https://world.openfoodfacts.org/). The tracker uses product_name and the
per-100 g nutriments energy-kcal_100g, proteins_100g, fat_100g and
carbohydrates_100g.
"""

import logging
import re
from typing import Any, Dict, Optional

from api.config import OpenFoodFactsConfig

from .base import BaseConnector, ProductNotFoundError

logger = logging.getLogger(__name__)

PRODUCT_FIELDS = "product_name,brands,nutriments,serving_size"


def clean_barcode(barcode: str) -> str:
    """
    Strip whitespace and dashes from a scanned or typed barcode.

    Examples:
        >>> clean_barcode(" 5449-0000 00996 ")
        '5449000000996'
    """
    return re.sub(r"[\s-]", "", barcode or "")


class OpenFoodFactsConnector(BaseConnector):
    """Connector for the Open Food Facts v2 product endpoint."""
    source = "openfoodfacts"

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None) -> None:
        super().__init__(base_url or OpenFoodFactsConfig.get_base_url(), timeout)

    def get_product(self, barcode: str) -> Dict[str, Any]:
        """
        Fetch a product by barcode.

        Args:
            barcode: EAN/UPC/Code 128 barcode digits

        Returns:
            The product dictionary (product_name, nutriments, ...)

        Raises:
            ProductNotFoundError: If the barcode is empty or unknown
            ConnectorError: If the request fails
        """
        code = clean_barcode(barcode)
        if not code:
            raise ProductNotFoundError("No barcode detected")

        logger.debug("Looking up barcode %s on Open Food Facts", code)
        data = self._get_json(f"/api/v2/product/{code}.json", params={"fields": PRODUCT_FIELDS})

        # Unknown products come back with status 0 (or no product at all)
        product = data.get("product")
        if data.get("status") == 0 or not isinstance(product, dict):
            raise ProductNotFoundError("Product not found in OpenFoodFacts")
        return product
