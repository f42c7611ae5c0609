"""
Clerk backend API adapter (user lookup for self-healing profile creation)
"""
import logging
from typing import Any, Dict, Optional

import httpx

from app.core.config import settings
from app.core.errors import ConfigurationError, DependencyError

logger = logging.getLogger(__name__)


class ClerkClient:
    """Client for the Clerk backend users API"""

    def __init__(self):
        self.base_url = settings.CLERK_API_URL.rstrip("/")
        self.secret_key = settings.CLERK_SECRET_KEY
        self.client = httpx.AsyncClient(timeout=10.0)

    async def get_user(self, clerk_user_id: str) -> Optional[Dict[str, Any]]:
        """
        Fetch a user from Clerk

        Returns:
            {
                "id": str,
                "email": str | None,  # primary email address
                "firstName": str | None,
                "lastName": str | None,
                "imageUrl": str | None
            }
            or None when Clerk does not know the user
        """
        if not self.secret_key:
            raise ConfigurationError("CLERK_SECRET_KEY is not configured")

        try:
            response = await self.client.get(
                f"{self.base_url}/users/{clerk_user_id}",
                headers={"Authorization": f"Bearer {self.secret_key}"},
            )
            if response.status_code == 404:
                return None
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("Clerk user lookup failed: %s", e)
            raise DependencyError("Identity provider is temporarily unavailable")

        data = response.json()
        primary_id = data.get("primary_email_address_id")
        email = None
        for address in data.get("email_addresses", []):
            if address.get("id") == primary_id:
                email = address.get("email_address")
                break

        return {
            "id": data.get("id", clerk_user_id),
            "email": email,
            "firstName": data.get("first_name"),
            "lastName": data.get("last_name"),
            "imageUrl": data.get("image_url"),
        }


# Singleton instance
_clerk_client: Optional[ClerkClient] = None


def get_clerk_client() -> ClerkClient:
    """Get Clerk client instance"""
    global _clerk_client
    if _clerk_client is None:
        _clerk_client = ClerkClient()
    return _clerk_client
