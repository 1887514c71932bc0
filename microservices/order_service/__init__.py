"""
Order Service

Marketplace order processing microservice providing:
- Order creation with frozen catalog snapshots and stock reservation
- Deterministic pricing (subtotal, tax, shipping, grand total)
- Order and order line status management
- Order queries with localized status names

Port: 8210
"""

__version__ = "1.0.0"
__service__ = "order_service"
