"""
Internal Service Authentication

Headers that mark a request as service-to-service traffic. Outbound clients
add them; the gateway lets them through without a user session.
"""

import os
import logging

logger = logging.getLogger(__name__)

INTERNAL_SERVICE_SECRET = os.getenv("INTERNAL_SERVICE_SECRET", "dev-internal-secret-change-in-production")
INTERNAL_SERVICE_HEADER = "X-Internal-Service"
INTERNAL_SERVICE_SECRET_HEADER = "X-Internal-Service-Secret"


class InternalServiceAuth:
    """Internal service authentication helpers"""

    @staticmethod
    def get_internal_service_headers() -> dict:
        """Headers to attach to service-to-service requests"""
        return {
            INTERNAL_SERVICE_HEADER: "true",
            INTERNAL_SERVICE_SECRET_HEADER: INTERNAL_SERVICE_SECRET
        }

    @staticmethod
    def is_internal_service_headers(headers) -> bool:
        """True when headers carry a valid internal service secret"""
        return (
            headers.get(INTERNAL_SERVICE_HEADER) == "true"
            and headers.get(INTERNAL_SERVICE_SECRET_HEADER) == INTERNAL_SERVICE_SECRET
        )


__all__ = [
    "InternalServiceAuth",
    "INTERNAL_SERVICE_HEADER",
    "INTERNAL_SERVICE_SECRET_HEADER"
]
