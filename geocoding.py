"""
Google Maps geocoding for seller onboarding and buyer location entry.

Provides:
- Address -> GeoLocation (coordinates plus city/state/zip when available)
- Coordinates -> formatted address (reverse geocoding)
"""

import logging
from typing import Dict, List, Optional

import googlemaps
from googlemaps.exceptions import ApiError

from errors import GeocodingError
from geo import GeoLocation

logger = logging.getLogger(__name__)


def _component(components: List[Dict], kind: str, short: bool = False) -> Optional[str]:
    for component in components:
        if kind in component.get("types", []):
            return component["short_name" if short else "long_name"]
    return None


class GeocodingClient:
    """Thin wrapper around googlemaps.Client returning GeoLocation objects"""

    def __init__(self, api_key: str):
        """
        Initialize Google Maps client.

        Args:
            api_key: Google Maps API key

        Raises:
            ValueError: If API key is missing
        """
        if not api_key:
            raise ValueError("Google Maps API key is required")

        self.client = googlemaps.Client(key=api_key)
        logger.info("Google Maps geocoding client initialized")

    def geocode_address(self, address: str) -> GeoLocation:
        """
        Resolve a free-text address.

        Args:
            address: Street address, city or zip code

        Returns:
            GeoLocation with formatted address and components

        Raises:
            GeocodingError: If the address does not resolve
            ApiError: If the Google Maps call fails
        """
        try:
            results = self.client.geocode(address, region="us")
        except ApiError as e:
            logger.error(f"Google Maps API error: {e}")
            raise

        if not results:
            raise GeocodingError(f"Could not geocode address: {address}")

        result = results[0]
        location = result["geometry"]["location"]
        components = result.get("address_components", [])

        geo_loc = GeoLocation(
            latitude=location["lat"],
            longitude=location["lng"],
            address=result.get("formatted_address", address),
            city=_component(components, "locality"),
            state=_component(components, "administrative_area_level_1", short=True),
            zip_code=_component(components, "postal_code"),
        )

        logger.info(f"Geocoded: {address} -> ({geo_loc.latitude:.4f}, {geo_loc.longitude:.4f})")
        return geo_loc

    def reverse_geocode(self, latitude: float, longitude: float) -> Optional[str]:
        """Formatted address for coordinates, or None if nothing matches."""
        try:
            results = self.client.reverse_geocode((latitude, longitude))
        except ApiError as e:
            logger.error(f"Google Maps API error: {e}")
            raise

        if not results:
            return None
        return results[0].get("formatted_address")


if __name__ == "__main__":
    import sys

    import config

    logging.basicConfig(level=logging.INFO)

    if not config.GOOGLEMAPS_API_KEY:
        print("Error: GOOGLEMAPS_API_KEY not set")
        sys.exit(1)

    client = GeocodingClient(config.GOOGLEMAPS_API_KEY)
    address = " ".join(sys.argv[1:]) or "1 Market St, San Francisco, CA"
    try:
        loc = client.geocode_address(address)
        print(f"✓ {loc.address}")
        print(f"  Coordinates: ({loc.latitude}, {loc.longitude})")
        print(f"  City/State/Zip: {loc.city}, {loc.state} {loc.zip_code}")
    except GeocodingError as e:
        print(f"✗ {e}")
