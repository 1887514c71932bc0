"""
Base Service Client for Internal Microservice Communication

Base class of the HTTP clients a service uses to call its peers. Handles:
1. Service URL resolution (explicit URL or ConfigManager discovery)
2. Internal service authentication headers
3. httpx client lifecycle
4. Timeouts

Usage:
    class AccountClient(BaseServiceClient):
        service_name = "account_service"
        default_port = 8202

        async def get_user(self, user_id: str):
            response = await self.get(f"/api/v1/accounts/{user_id}")
            return response.json()
"""

import httpx
import logging
from typing import Optional, Dict, Any
from abc import ABC

logger = logging.getLogger(__name__)


class BaseServiceClient(ABC):
    """Base class for peer service HTTP clients"""

    # Subclasses define these
    service_name: str = None
    default_port: int = None

    def __init__(
        self,
        base_url: Optional[str] = None,
        config=None,
        use_internal_auth: bool = True,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            base_url: Service base URL (resolved through config when omitted)
            config: ConfigManager used for discovery
            use_internal_auth: Send internal service headers
            timeout: Request timeout in seconds
            transport: Custom httpx transport (mock transport in tests)
        """
        if not self.service_name:
            raise ValueError(f"{self.__class__.__name__} must define 'service_name'")

        if base_url:
            self.base_url = base_url.rstrip('/')
        else:
            self.base_url = self._discover_service(config)

        self.client = httpx.AsyncClient(
            timeout=timeout,
            headers=self._build_default_headers(use_internal_auth),
            transport=transport,
        )

        logger.debug(
            f"Initialized {self.service_name} client: {self.base_url} "
            f"(internal_auth={'enabled' if use_internal_auth else 'disabled'})"
        )

    def _discover_service(self, config) -> str:
        """Resolve the service base URL"""
        if config is not None:
            return config.get_service_url(self.service_name)
        default_url = f"http://localhost:{self.default_port}" if self.default_port else "http://localhost:8000"
        logger.warning(f"No config for {self.service_name} discovery, using default: {default_url}")
        return default_url

    def _build_default_headers(self, use_internal_auth: bool) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "User-Agent": f"marketplace-internal-client/{self.service_name}"
        }

        if use_internal_auth:
            from core.internal_service_auth import InternalServiceAuth
            headers.update(InternalServiceAuth.get_internal_service_headers())

        return headers

    async def close(self):
        """Close the HTTP client"""
        await self.client.aclose()
        logger.debug(f"Closed {self.service_name} client")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def get(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> httpx.Response:
        """GET request"""
        url = f"{self.base_url}{path}"
        return await self.client.get(url, params=params, headers=headers)

    async def health_check(self) -> bool:
        """True when the peer answers /health with 200"""
        try:
            response = await self.get("/health")
            return response.status_code == 200
        except httpx.HTTPError as e:
            logger.warning(f"{self.service_name} health check failed: {e}")
            return False


__all__ = ["BaseServiceClient"]
