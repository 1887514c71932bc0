"""
Order Assembler

Joins an order row with its lines, addresses, payment and localized status
names into the OrderDetail read model.
"""

from typing import Dict, List, Optional

from .models import (
    AddressType, Order, OrderAddress, OrderDetail, OrderItem,
    OrderPayment, OrderStatusName,
)

UNKNOWN_STATUS_NAME_FR = "Inconnu"


class OrderAssembler:

    def assemble(
        self,
        order: Order,
        items: List[OrderItem],
        addresses: List[OrderAddress],
        payment: Optional[OrderPayment],
        status_names: Dict[str, OrderStatusName],
    ) -> OrderDetail:
        status_name = status_names.get(order.status.value)
        shipping = next((a for a in addresses if a.address_type == AddressType.SHIPPING), None)
        billing = next((a for a in addresses if a.address_type == AddressType.BILLING), None)

        return OrderDetail(
            order_id=order.order_id,
            user_id=order.user_id,
            order_number=order.order_number,
            order_date=order.order_date,
            status_code=order.status,
            status_name_en=status_name.name_en if status_name else order.status.value,
            status_name_fr=status_name.name_fr if status_name else UNKNOWN_STATUS_NAME_FR,
            subtotal=order.subtotal,
            tax_total=order.tax_total,
            shipping_total=order.shipping_total,
            grand_total=order.grand_total,
            tax_rate=order.tax_rate,
            notes=order.notes,
            created_at=order.created_at,
            updated_at=order.updated_at,
            items=list(items),
            shipping_address=shipping,
            billing_address=billing,
            payment=payment,
        )
