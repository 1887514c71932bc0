"""
Order Service Routes Registry
Defines all API routes exposed by the order service
"""

from typing import List, Dict, Any

SERVICE_ROUTES = [
    {
        "path": "/health",
        "methods": ["GET"],
        "auth_required": False,
        "description": "Service health check"
    },
    {
        "path": "/health/detailed",
        "methods": ["GET"],
        "auth_required": False,
        "description": "Detailed health check"
    },
    # Orders
    {
        "path": "/api/v1/orders",
        "methods": ["GET", "POST"],
        "auth_required": True,
        "description": "List/create orders"
    },
    {
        "path": "/api/v1/orders/{order_id}",
        "methods": ["GET", "PUT", "DELETE"],
        "auth_required": True,
        "description": "Get/update/delete order"
    },
    {
        "path": "/api/v1/orders/number/{order_number}",
        "methods": ["GET"],
        "auth_required": True,
        "description": "Get order by order number"
    },
    {
        "path": "/api/v1/orders/{order_id}/status",
        "methods": ["PUT"],
        "auth_required": True,
        "description": "Change order status"
    },
    {
        "path": "/api/v1/orders/{order_id}/items/{order_item_id}/status",
        "methods": ["PUT"],
        "auth_required": True,
        "description": "Change order line status"
    },
    # Status lookup
    {
        "path": "/api/v1/order-statuses",
        "methods": ["GET"],
        "auth_required": False,
        "description": "Localized order statuses"
    },
    {
        "path": "/api/v1/order-statuses/{status_code}",
        "methods": ["GET"],
        "auth_required": False,
        "description": "Localized order status"
    },
    # Order Info
    {
        "path": "/api/v1/order/info",
        "methods": ["GET"],
        "auth_required": False,
        "description": "Get order service information"
    },
]


def get_routes_metadata() -> Dict[str, Any]:
    """Compact route summary for the service info endpoint"""
    return {
        "route_count": len(SERVICE_ROUTES),
        "base_path": "/api/v1/orders",
        "public": [r["path"] for r in SERVICE_ROUTES if not r["auth_required"]],
        "protected": [r["path"] for r in SERVICE_ROUTES if r["auth_required"]],
    }


def get_route_paths() -> List[str]:
    return [r["path"] for r in SERVICE_ROUTES]


SERVICE_METADATA = {
    "service_name": "order_service",
    "version": "1.0.0",
    "tags": ["v1", "marketplace", "order-management", "e-commerce"],
    "capabilities": [
        "order_creation",
        "stock_reservation",
        "order_pricing",
        "order_status_management",
        "order_item_status_management",
        "order_queries",
    ]
}
