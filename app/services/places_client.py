"""
Google Places (New Places API) adapter used during business onboarding
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

from app.core.config import settings
from app.core.errors import ConfigurationError, DependencyError

logger = logging.getLogger(__name__)

SEARCH_FIELD_MASK = (
    "places.id,places.displayName,places.formattedAddress,places.rating,"
    "places.userRatingCount,places.types,places.location"
)
DETAILS_FIELD_MASK = (
    "id,displayName,formattedAddress,nationalPhoneNumber,internationalPhoneNumber,"
    "websiteUri,googleMapsUri,rating,userRatingCount,types,location"
)


def generate_review_url(place_id: str) -> str:
    return f"https://search.google.com/local/writereview?placeid={place_id}"


def _display_name(place: Dict[str, Any]) -> str:
    name = place.get("displayName") or ""
    if isinstance(name, dict):
        return name.get("text", "")
    return name


def _location(place: Dict[str, Any]) -> Dict[str, float]:
    location = place.get("location") or {}
    return {"lat": location.get("latitude", 0), "lng": location.get("longitude", 0)}


class PlacesClient:
    """Client for Google Places text search and place details"""

    def __init__(self):
        self.base_url = settings.GOOGLE_PLACES_API_URL.rstrip("/")
        self.api_key = settings.GOOGLE_PLACES_API_KEY
        self.client = httpx.AsyncClient(timeout=10.0)

    def _headers(self, field_mask: str) -> Dict[str, str]:
        if not self.api_key:
            raise ConfigurationError("Google Places API key not configured")
        return {
            "Content-Type": "application/json",
            "X-Goog-Api-Key": self.api_key,
            "X-Goog-FieldMask": field_mask,
        }

    async def search_places(self, query: str, limit: int = 10) -> List[Dict[str, Any]]:
        """
        Text search for businesses

        Returns:
            List of {
                "placeId": str,
                "name": str,
                "formattedAddress": str,
                "rating": float | None,
                "userRatingsTotal": int | None,
                "types": [str],
                "location": {"lat": float, "lng": float}
            }
        """
        headers = self._headers(SEARCH_FIELD_MASK)
        try:
            response = await self.client.post(
                f"{self.base_url}/places:searchText",
                json={"textQuery": query, "maxResultCount": limit},
                headers=headers,
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("Google Places search failed: %s", e, extra={"extra_data": {"query": query}})
            raise DependencyError("Place search is temporarily unavailable")

        places = response.json().get("places") or []
        results = [
            {
                "placeId": place.get("id"),
                "name": _display_name(place),
                "formattedAddress": place.get("formattedAddress", ""),
                "rating": place.get("rating"),
                "userRatingsTotal": place.get("userRatingCount"),
                "types": place.get("types", []),
                "location": _location(place),
            }
            for place in places
        ]
        logger.info(
            "Places search completed",
            extra={"extra_data": {"query": query, "results": len(results)}},
        )
        return results

    async def get_place_details(self, place_id: str) -> Optional[Dict[str, Any]]:
        """Fetch details for one place; None when Google does not know the id"""
        headers = self._headers(DETAILS_FIELD_MASK)
        try:
            response = await self.client.get(f"{self.base_url}/places/{place_id}", headers=headers)
            if response.status_code in (400, 404):
                return None
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("Google Places details failed: %s", e, extra={"extra_data": {"place_id": place_id}})
            raise DependencyError("Place details are temporarily unavailable")

        place = response.json()
        resolved_id = place.get("id") or place_id
        return {
            "placeId": resolved_id,
            "name": _display_name(place),
            "formattedAddress": place.get("formattedAddress", ""),
            "phoneNumber": place.get("nationalPhoneNumber"),
            "internationalPhoneNumber": place.get("internationalPhoneNumber"),
            "website": place.get("websiteUri"),
            "mapsUrl": place.get("googleMapsUri"),
            "rating": place.get("rating"),
            "userRatingsTotal": place.get("userRatingCount"),
            "types": place.get("types", []),
            "location": _location(place),
            "reviewUrl": generate_review_url(resolved_id),
        }


# Singleton instance
_places_client: Optional[PlacesClient] = None


def get_places_client() -> PlacesClient:
    """Get Places client instance"""
    global _places_client
    if _places_client is None:
        _places_client = PlacesClient()
    return _places_client
