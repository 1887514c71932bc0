"""
Account Service Client for Order Service

HTTP client for synchronous communication with account_service
"""

import logging

from core.service_client_base import BaseServiceClient

logger = logging.getLogger(__name__)


class AccountClient(BaseServiceClient):
    """Client for account_service"""

    service_name = "account_service"
    default_port = 8202

    async def user_exists(self, user_id: str) -> bool:
        """
        Check that a user account exists

        Args:
            user_id: User ID

        Returns:
            True if the account service knows the user, False on 404

        Raises:
            httpx.HTTPError: account service unreachable or failing
        """
        response = await self.get(f"/api/v1/accounts/{user_id}")
        if response.status_code == 404:
            logger.warning(f"User {user_id} not found")
            return False
        response.raise_for_status()
        return True
