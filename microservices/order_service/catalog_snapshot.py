"""
Catalog Snapshot Reader

Reads the live catalog for each requested line and freezes the name and
price the order will keep. The stock comparison here is advisory; the
conditional decrement in OrderRepository.create_order is authoritative.
"""

import logging
from typing import Dict, List

from .models import CatalogItem, LineSnapshot, OrderItemRequest
from .protocols import (
    CatalogItemNotFoundError,
    CatalogRepositoryProtocol,
    InsufficientStockError,
)

logger = logging.getLogger(__name__)


class CatalogSnapshotReader:
    """Builds LineSnapshots from the catalog, first failing line aborts"""

    def __init__(self, catalog: CatalogRepositoryProtocol):
        self.catalog = catalog

    async def snapshot_lines(self, lines: List[OrderItemRequest]) -> List[LineSnapshot]:
        """
        Snapshot every requested line, in request order.

        Raises:
            CatalogItemNotFoundError: item or variant missing or soft-deleted
            InsufficientStockError: variant stock below the requested quantity
        """
        items: Dict[str, CatalogItem] = {}
        snapshots = []

        for line in lines:
            item = items.get(line.item_id)
            if item is None:
                item = await self.catalog.get_item(line.item_id)
                if item is None or item.deleted:
                    logger.warning(f"Catalog item {line.item_id} not found")
                    raise CatalogItemNotFoundError(f"Item with ID {line.item_id} not found.")
                items[line.item_id] = item

            variant = item.find_variant(line.item_variant_id)
            if variant is None or variant.deleted:
                logger.warning(f"Variant {line.item_variant_id} of item {line.item_id} not found")
                raise CatalogItemNotFoundError(
                    f"Item variant with ID {line.item_variant_id} not found."
                )

            if variant.stock_quantity < line.quantity:
                logger.warning(
                    f"Insufficient stock for variant {variant.item_variant_id}: "
                    f"{variant.stock_quantity} < {line.quantity}"
                )
                raise InsufficientStockError(
                    item_id=item.item_id,
                    item_variant_id=variant.item_variant_id,
                    available=variant.stock_quantity,
                    requested=line.quantity,
                    item_name=item.name_en,
                )

            snapshots.append(LineSnapshot(
                item_id=item.item_id,
                item_variant_id=variant.item_variant_id,
                quantity=line.quantity,
                unit_price=variant.price,
                name_en=item.name_en,
                name_fr=item.name_fr,
                variant_name_en=variant.name_en,
                variant_name_fr=variant.name_fr,
            ))

        return snapshots
