"""
Tax Rate Providers for Order Service

Either a flat configured rate, or the sum of the active rates the tax
service holds for the billing location.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, List

from core.service_client_base import BaseServiceClient

logger = logging.getLogger(__name__)


class FlatTaxRateProvider:
    """Same configured rate for every location"""

    def __init__(self, rate: Decimal):
        self.rate = Decimal(rate)

    async def get_tax_rate(self, country: str, province_state: str) -> Decimal:
        return self.rate


class TaxServiceClient(BaseServiceClient):
    """Client for tax_service"""

    service_name = "tax_service"
    default_port = 8253

    async def list_tax_rates(self, country: str, province_state: str) -> List[Dict[str, Any]]:
        response = await self.get(
            "/api/v1/tax-rates",
            params={"country": country, "province_state": province_state},
        )
        response.raise_for_status()
        data = response.json()
        return data.get("tax_rates", []) if isinstance(data, dict) else data

    async def get_tax_rate(self, country: str, province_state: str) -> Decimal:
        """
        Combined rate of the active taxes for a location.

        A location without active rates is untaxed (Decimal('0')).
        """
        rates = await self.list_tax_rates(country, province_state)
        total = sum(
            (Decimal(str(r["rate"])) for r in rates if r.get("is_active", True)),
            Decimal(0),
        )
        if not rates:
            logger.info(f"No tax rates for {country}/{province_state}, applying 0")
        return total
