"""
Order Microservice

Responsibilities:
- Order creation with catalog snapshots, pricing and stock reservation
- Order and order line status management
- Order queries scoped to the authenticated user
- Order lifecycle events
"""

from fastapi import FastAPI, HTTPException, Depends, status, Query, Path, Body
from fastapi.responses import JSONResponse
import uvicorn
from contextlib import asynccontextmanager
from typing import Optional, List
from datetime import datetime, timezone

from core.config_manager import ConfigManager
from core.logger import setup_service_logger
from core.nats_client import get_event_bus
from core.auth_dependencies import require_user_id
from .order_service import OrderService
from .factory import create_order_service
from .protocols import (
    CatalogItemNotFoundError,
    InsufficientStockError,
    OrderAuthorizationError,
    OrderNotFoundError,
    OrderPersistenceError,
    OrderServiceError,
    OrderStatusNotFoundError,
    OrderValidationError,
    UserNotFoundError,
)
from .models import (
    CreateOrderRequest, UpdateOrderRequest, OrderStatusUpdateRequest,
    OrderItemStatusUpdateRequest, OrderDetail, OrderListResponse,
    OrderDeleteResponse, OrderStatusName, OrderServiceStatus,
)
from .routes_registry import get_routes_metadata

# Initialize configuration
config_manager = ConfigManager("order_service")
config = config_manager.get_service_config()

# Setup loggers (use actual service name)
logger = setup_service_logger("order_service", config=config.logging)


class OrderMicroservice:
    """Order microservice core class"""

    def __init__(self):
        self.order_service: Optional[OrderService] = None
        self.event_bus = None

    async def initialize(self, event_bus=None):
        """Initialize the microservice"""
        try:
            self.event_bus = event_bus
            self.order_service = create_order_service(config=config_manager, event_bus=event_bus)
            await self.order_service.repository.initialize()
            logger.info("Order microservice initialized successfully")
        except Exception as e:
            logger.error(f"Failed to initialize order microservice: {e}")
            raise

    async def shutdown(self):
        """Shutdown the microservice"""
        if self.order_service:
            await self.order_service.repository.close()
            for client in (self.order_service.account_client, self.order_service.tax_provider):
                if hasattr(client, "close"):
                    await client.close()
        if self.event_bus:
            await self.event_bus.close()
            logger.info("Event bus closed")
        logger.info("Order microservice shutdown completed")


# Global microservice instance
order_microservice = OrderMicroservice()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management"""
    # Initialize event bus
    event_bus = None
    if config.infra.nats_enabled:
        try:
            event_bus = await get_event_bus("order_service", config=config_manager)
            logger.info("✅ Event bus initialized successfully")
        except Exception as e:
            logger.warning(f"⚠️  Failed to initialize event bus: {e}. Continuing without event publishing.")
            event_bus = None

    await order_microservice.initialize(event_bus=event_bus)

    yield

    await order_microservice.shutdown()


# Create FastAPI application
app = FastAPI(
    title="Order Service",
    description="Marketplace order processing microservice",
    version="1.0.0",
    lifespan=lifespan
)

# CORS handled by Gateway


# Dependency injection
def get_order_service() -> OrderService:
    """Get order service instance"""
    if not order_microservice.order_service:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Order service not initialized"
        )
    return order_microservice.order_service


# Health check endpoints
@app.get("/health")
async def health_check():
    """Service health check"""
    return {
        "status": "healthy",
        "service": config.service_name,
        "port": config.service_port,
        "version": "1.0.0",
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@app.get("/health/detailed", response_model=OrderServiceStatus)
async def detailed_health_check(
    order_service: OrderService = Depends(get_order_service)
):
    """Detailed health check with database connectivity"""
    connected = await order_service.health_check()
    return OrderServiceStatus(
        status="operational" if connected else "degraded",
        port=config.service_port,
        database_connected=connected,
        timestamp=datetime.now(timezone.utc)
    )


# Order endpoints

@app.post("/api/v1/orders", response_model=OrderDetail, status_code=status.HTTP_201_CREATED)
async def create_order(
    request: CreateOrderRequest,
    user_id: str = Depends(require_user_id),
    order_service: OrderService = Depends(get_order_service)
):
    """Create a new order for the authenticated user"""
    return await order_service.create_order(user_id, request)


@app.get("/api/v1/orders", response_model=OrderListResponse)
async def list_orders(
    status_code: Optional[str] = Query(None, alias="status", description="Filter by status code"),
    limit: Optional[int] = Query(None, ge=1, le=500, description="Maximum results"),
    offset: int = Query(0, ge=0),
    user_id: str = Depends(require_user_id),
    order_service: OrderService = Depends(get_order_service)
):
    """List the authenticated user's orders, newest first"""
    orders = await order_service.list_orders(user_id, status=status_code, limit=limit, offset=offset)
    return OrderListResponse(orders=orders, count=len(orders), limit=limit, offset=offset)


@app.get("/api/v1/orders/number/{order_number}", response_model=OrderDetail)
async def get_order_by_number(
    order_number: int = Path(..., description="Order number"),
    user_id: str = Depends(require_user_id),
    order_service: OrderService = Depends(get_order_service)
):
    """Get order by order number"""
    return await order_service.get_order_by_number(user_id, order_number)


@app.get("/api/v1/orders/{order_id}", response_model=OrderDetail)
async def get_order(
    order_id: str = Path(..., description="Order ID"),
    user_id: str = Depends(require_user_id),
    order_service: OrderService = Depends(get_order_service)
):
    """Get order details"""
    return await order_service.get_order(user_id, order_id)


@app.put("/api/v1/orders/{order_id}", response_model=OrderDetail)
async def update_order(
    order_id: str = Path(..., description="Order ID"),
    request: UpdateOrderRequest = Body(...),
    user_id: str = Depends(require_user_id),
    order_service: OrderService = Depends(get_order_service)
):
    """Update order status, notes and lines"""
    return await order_service.update_order(user_id, order_id, request)


@app.put("/api/v1/orders/{order_id}/status", response_model=OrderDetail)
async def update_order_status(
    order_id: str = Path(..., description="Order ID"),
    request: OrderStatusUpdateRequest = Body(...),
    user_id: str = Depends(require_user_id),
    order_service: OrderService = Depends(get_order_service)
):
    """Change order status"""
    return await order_service.update_order_status(user_id, order_id, request.status_code)


@app.put("/api/v1/orders/{order_id}/items/{order_item_id}/status", response_model=OrderDetail)
async def update_order_item_status(
    order_id: str = Path(..., description="Order ID"),
    order_item_id: str = Path(..., description="Order item ID"),
    request: OrderItemStatusUpdateRequest = Body(...),
    user_id: str = Depends(require_user_id),
    order_service: OrderService = Depends(get_order_service)
):
    """Change the status of one order line"""
    return await order_service.update_order_item_status(
        user_id, order_id, order_item_id, request.status, request.on_hold_reason
    )


@app.delete("/api/v1/orders/{order_id}", response_model=OrderDeleteResponse)
async def delete_order(
    order_id: str = Path(..., description="Order ID"),
    user_id: str = Depends(require_user_id),
    order_service: OrderService = Depends(get_order_service)
):
    """Delete an order"""
    return await order_service.delete_order(user_id, order_id)


# Status lookup endpoints

@app.get("/api/v1/order-statuses", response_model=List[OrderStatusName])
async def list_order_statuses(
    order_service: OrderService = Depends(get_order_service)
):
    """Localized order status names"""
    return await order_service.list_order_statuses()


@app.get("/api/v1/order-statuses/{status_code}", response_model=OrderStatusName)
async def get_order_status(
    status_code: str = Path(..., description="Status code, e.g. Pending"),
    order_service: OrderService = Depends(get_order_service)
):
    """Localized names of one order status"""
    return await order_service.get_order_status(status_code)


# Service info endpoints

@app.get("/api/v1/order/info")
async def get_service_info():
    """Get order service information"""
    return {
        "service": "order_service",
        "version": "1.0.0",
        "port": config.service_port,
        "status": "operational",
        "currency": config.pricing.currency,
        "tax_source": config.pricing.tax_source,
        "routes": get_routes_metadata(),
    }


# Error handlers

def _error_response(status_code: int, exc: OrderServiceError, detail: Optional[str] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"detail": detail or str(exc), "error_code": exc.error_code}
    )


@app.exception_handler(InsufficientStockError)
async def insufficient_stock_handler(request, exc: InsufficientStockError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "detail": str(exc),
            "error_code": exc.error_code,
            "item_id": exc.item_id,
            "item_variant_id": exc.item_variant_id,
            "available": exc.available,
            "requested": exc.requested,
        }
    )


@app.exception_handler(OrderValidationError)
async def validation_error_handler(request, exc):
    return _error_response(status.HTTP_400_BAD_REQUEST, exc)


@app.exception_handler(OrderNotFoundError)
@app.exception_handler(UserNotFoundError)
@app.exception_handler(CatalogItemNotFoundError)
@app.exception_handler(OrderStatusNotFoundError)
async def not_found_error_handler(request, exc):
    return _error_response(status.HTTP_404_NOT_FOUND, exc)


@app.exception_handler(OrderAuthorizationError)
async def authorization_error_handler(request, exc):
    return _error_response(status.HTTP_403_FORBIDDEN, exc)


@app.exception_handler(OrderPersistenceError)
@app.exception_handler(OrderServiceError)
async def service_error_handler(request, exc):
    logger.error(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc}")
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, exc, detail="Internal server error")


if __name__ == "__main__":
    # Print configuration summary for debugging
    config_manager.print_config_summary()

    uvicorn.run(
        "microservices.order_service.main:app",
        host=config.service_host,
        port=config.service_port,
        reload=config.debug,
        log_level=config.log_level.lower()
    )
