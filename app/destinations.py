"""Destination suggestions from a curated seasonal table with a geocoder fallback."""
import logging
from dataclasses import dataclass, replace
from typing import Dict, List, Optional

import requests

import pricing
from config import Config

logger = logging.getLogger(__name__)

MAX_SUGGESTIONS = 20
FALLBACK_THRESHOLD = 5
MIN_FALLBACK_QUERY = 2


@dataclass
class DestinationSuggestion:
    name: str
    country: str
    description: str
    latitude: float = 0.0
    longitude: float = 0.0
    suggested_season: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.name}, {self.country}" if self.country else self.name


def _d(name, country, description, latitude):
    return DestinationSuggestion(name=name, country=country, description=description, latitude=latitude)


CURATED_DESTINATIONS: Dict[str, List[DestinationSuggestion]] = {
    "spring": [
        _d("Kyoto", "Japan", "Cherry blossom viewing", 35.0116),
        _d("Keukenhof", "Netherlands", "Tulip gardens", 52.2697),
        _d("Washington D.C.", "USA", "Cherry blossom festival", 38.9072),
        _d("Provence", "France", "Lavender fields", 43.9352),
        _d("Patagonia", "Chile", "Spring trekking", -41.8101),
        _d("Amsterdam", "Netherlands", "Flower markets", 52.3676),
        _d("Seville", "Spain", "Orange blossom season", 37.3891),
        _d("New Zealand", "New Zealand", "Southern spring", -40.9006),
    ],
    "summer": [
        _d("Amalfi Coast", "Italy", "Mediterranean paradise", 40.6333),
        _d("Santorini", "Greece", "Island escape", 36.3932),
        _d("Maldives", "Maldives", "Tropical luxury", 3.2028),
        _d("Bali", "Indonesia", "Island adventures", -8.3405),
        _d("Ibiza", "Spain", "Beach parties", 38.9067),
        _d("Mykonos", "Greece", "Greek island life", 37.4467),
        _d("Côte d'Azur", "France", "French Riviera", 43.7102),
        _d("Hawaii", "USA", "Tropical paradise", 19.8968),
    ],
    "autumn": [
        _d("Vermont", "USA", "Fall foliage", 44.5588),
        _d("Bavaria", "Germany", "Oktoberfest & castles", 48.7904),
        _d("Kyoto", "Japan", "Momiji maple viewing", 35.0116),
        _d("Tuscany", "Italy", "Harvest season", 43.7711),
        _d("New England", "USA", "Fall colors", 42.3601),
        _d("Scottish Highlands", "UK", "Autumn landscapes", 57.1497),
        _d("Quebec", "Canada", "Maple season", 46.8139),
        _d("Napa Valley", "USA", "Wine harvest", 38.2975),
    ],
    "winter": [
        _d("Lapland", "Finland", "Northern lights & snow", 68.0000),
        _d("Zermatt", "Switzerland", "Alpine skiing", 46.0207),
        _d("Aspen", "USA", "Luxury ski resort", 39.1911),
        _d("Reykjavik", "Iceland", "Northern lights", 64.1466),
        _d("Queenstown", "New Zealand", "Winter sports", -45.0312),
        _d("Hokkaido", "Japan", "Powder snow", 43.0642),
        _d("Chamonix", "France", "Mont Blanc skiing", 45.9237),
        _d("Tromsø", "Norway", "Arctic adventures", 69.6492),
    ],
}

WINTER_KEYWORDS = ("ski", "alps", "aspen", "zermatt", "lapland", "iceland")
SUMMER_KEYWORDS = ("beach", "coast", "island", "maldives", "bali", "hawaii")
SPRING_KEYWORDS = ("cherry", "tulip", "blossom", "garden")
AUTUMN_KEYWORDS = ("foliage", "harvest", "vermont", "vineyard")


def classify_season_by_month(month: int) -> str:
    if month in (3, 4, 5):
        return "spring"
    if month in (6, 7, 8):
        return "summer"
    if month in (9, 10, 11):
        return "autumn"
    if month in (12, 1, 2):
        return "winter"
    return "summer"


def classify_season_by_location(destination: str, latitude: Optional[float] = None) -> str:
    """Best season for a destination, from name keywords first and latitude second."""
    southern = latitude is not None and latitude < 0
    name = destination.lower()

    if any(word in name for word in WINTER_KEYWORDS):
        # southern hemisphere seasons are flipped
        return "summer" if southern else "winter"
    if any(word in name for word in SUMMER_KEYWORDS):
        return "summer"
    if any(word in name for word in SPRING_KEYWORDS):
        return "spring"
    if any(word in name for word in AUTUMN_KEYWORDS):
        return "autumn"

    if latitude is not None:
        if abs(latitude) < 23.5:
            return "summer"
        if abs(latitude) > 60:
            return "winter"
    return "summer"


class NominatimGeocoder:
    """Place search against an OpenStreetMap Nominatim endpoint."""

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None, user_agent: Optional[str] = None):
        self.base_url = base_url or Config.GEOCODER_URL
        self.timeout = timeout or Config.GEOCODER_TIMEOUT
        self.session = requests.Session()
        self.session.headers.update({"User-Agent": user_agent or Config.GEOCODER_USER_AGENT})

    def search(self, query: str) -> List[DestinationSuggestion]:
        response = self.session.get(
            self.base_url,
            params={"q": query, "format": "json", "limit": 10, "featuretype": "city"},
            timeout=self.timeout,
        )
        response.raise_for_status()
        results = []
        for place in response.json():
            parts = [part.strip() for part in (place.get("display_name") or "").split(",") if part.strip()]
            name = parts[0] if parts else query
            country = parts[-1] if len(parts) > 1 else ""
            results.append(
                DestinationSuggestion(
                    name=name,
                    country=country,
                    description=f"Explore {name}",
                    latitude=_to_float(place.get("lat")),
                    longitude=_to_float(place.get("lon")),
                )
            )
        return results


def _to_float(value) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _matches(destination: DestinationSuggestion, query: str) -> bool:
    if not query:
        return True
    query = query.lower()
    return (
        query in destination.name.lower()
        or query in destination.country.lower()
        or query in destination.description.lower()
    )


def search_destinations(query: str = "", season: Optional[str] = None, geocoder=None) -> List[DestinationSuggestion]:
    """Curated matches for the query, topped up from the geocoder when there are few.

    Geocoder failures are logged and the curated results are returned alone.
    """
    query = (query or "").strip()
    seasons = [pricing.normalize_season(season)] if season else list(CURATED_DESTINATIONS)
    suggestions = []
    for name in seasons:
        for destination in CURATED_DESTINATIONS.get(name, []):
            if _matches(destination, query):
                suggestions.append(replace(destination, suggested_season=name))

    if len(query) >= MIN_FALLBACK_QUERY and len(suggestions) < FALLBACK_THRESHOLD:
        geocoder = geocoder or NominatimGeocoder()
        try:
            external = geocoder.search(query)
        except (requests.RequestException, ValueError) as exc:
            logger.warning("Geocoder search failed for %r, using curated results only: %s", query, exc)
            external = []
        known = {s.name.lower() for s in suggestions}
        for result in external:
            if result.name.lower() in known:
                continue
            known.add(result.name.lower())
            suggestions.append(
                replace(result, suggested_season=classify_season_by_location(result.name, result.latitude))
            )

    return suggestions[:MAX_SUGGESTIONS]
