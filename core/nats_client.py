"""
NATS JetStream Client for Python Microservices

Event-driven communication between marketplace services. Wraps nats-py:
each event is published to JetStream on a subject equal to its type
(e.g. ``order.created``) inside a per-domain stream (``order-stream``).
"""

import json
import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, TYPE_CHECKING

import nats
from nats.errors import Error as NATSError
from nats.js.errors import Error as JetStreamError

if TYPE_CHECKING:
    from core.config_manager import ConfigManager


class DecimalEncoder(json.JSONEncoder):
    """JSON encoder that keeps Decimal money values exact"""
    def default(self, obj):
        if isinstance(obj, Decimal):
            return str(obj)
        return super().default(obj)


logger = logging.getLogger(__name__)


class EventType(Enum):
    """Event types"""

    # Order Events
    ORDER_CREATED = "order.created"
    ORDER_UPDATED = "order.updated"
    ORDER_STATUS_CHANGED = "order.status_changed"
    ORDER_ITEM_STATUS_CHANGED = "order.item_status_changed"
    ORDER_DELETED = "order.deleted"


class ServiceSource(Enum):
    """Service sources"""

    ORDER_SERVICE = "order_service"


class Event:
    """Event envelope"""

    def __init__(
        self,
        event_type: EventType,
        source: ServiceSource,
        data: Dict[str, Any],
        subject: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
    ):
        self.id = str(uuid.uuid4())
        self.type = event_type.value
        self.source = source.value
        self.data = data
        self.subject = subject
        self.timestamp = datetime.now(timezone.utc).isoformat()
        self.metadata = metadata or {}
        self.version = "1.0.0"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "source": self.source,
            "subject": self.subject,
            "timestamp": self.timestamp,
            "data": self.data,
            "metadata": self.metadata,
            "version": self.version,
        }


class NATSEventBus:
    """NATS JetStream event bus"""

    def __init__(
        self,
        service_name: str,
        config: Optional["ConfigManager"] = None,
        servers: Optional[List[str]] = None,
    ):
        """
        Args:
            service_name: Name of the service (client connection name)
            config: Optional ConfigManager used to resolve the NATS url
            servers: Explicit NATS server urls
        """
        from core.config_manager import ConfigManager

        self.service_name = service_name
        if servers is None:
            if config is None:
                config = ConfigManager(service_name)
            servers = [config.get_service_config().infra.nats_server_url]
        self.servers = servers

        self._nc = None
        self._js = None
        self._streams: set = set()
        self._is_connected = False

        logger.info(f"NATS EventBus initialized: {', '.join(self.servers)}")

    async def connect(self):
        """Connect to NATS and open a JetStream context"""
        try:
            self._nc = await nats.connect(servers=self.servers, name=self.service_name)
            self._js = self._nc.jetstream()
            self._is_connected = True
            logger.info(f"Connected to NATS as {self.service_name}")
        except (NATSError, OSError) as e:
            logger.error(f"Failed to connect to NATS: {e}")
            raise

    async def publish_event(self, event: Event) -> bool:
        """
        Publish an event to its JetStream stream.

        Returns False instead of raising; publishing is best effort and
        never fails the business operation that triggered it.
        """
        if not self._is_connected or not self._js:
            logger.error("Not connected to NATS")
            return False

        stream_name = self._get_stream_name_for_event(event.type)
        try:
            await self._ensure_stream(stream_name, event.type.split('.')[0])
            payload = json.dumps(event.to_dict(), cls=DecimalEncoder).encode()
            ack = await self._js.publish(event.type, payload)
            logger.info(f"Published event {event.type} [{event.id}] to stream {stream_name}, seq={ack.seq}")
            return True
        except (NATSError, JetStreamError) as e:
            logger.error(f"Error publishing event {event.id}: {e}")
            return False

    async def _ensure_stream(self, stream_name: str, subject_prefix: str):
        if stream_name in self._streams:
            return
        try:
            await self._js.add_stream(name=stream_name, subjects=[f"{subject_prefix}.>"])
        except JetStreamError as e:
            # Stream already exists with a different config
            logger.debug(f"Stream creation note: {e}")
        self._streams.add(stream_name)

    def _get_stream_name_for_event(self, event_type: str) -> str:
        """order.created -> order-stream"""
        prefix = event_type.split('.')[0]
        return f"{prefix}-stream"

    async def close(self):
        """Drain and close the connection"""
        if self._nc is not None:
            try:
                await self._nc.drain()
            except NATSError as e:
                logger.warning(f"Error draining NATS connection: {e}")
            self._nc = None
            self._js = None

        self._is_connected = False
        logger.info("Disconnected from NATS")

    @property
    def is_connected(self) -> bool:
        return self._is_connected


# Singleton instance
_event_bus: Optional[NATSEventBus] = None


async def get_event_bus(
    service_name: str,
    config: Optional["ConfigManager"] = None,
) -> NATSEventBus:
    """Get or create the process-wide event bus"""
    global _event_bus

    if _event_bus is None:
        bus = NATSEventBus(service_name=service_name, config=config)
        await bus.connect()
        _event_bus = bus

    return _event_bus


__all__ = ["Event", "EventType", "ServiceSource", "NATSEventBus", "get_event_bus"]
