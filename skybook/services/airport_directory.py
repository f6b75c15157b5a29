"""
Airport Directory - search and resolve airports from the cached list
"""
from typing import Iterable, List, Optional
import logging
import re

from skybook.schemas.flight import Airport

logger = logging.getLogger(__name__)

LABEL_CODE_PATTERN = re.compile(r"\(([A-Za-z0-9]{3,4})\)\s*$")


def display_label(airport: Airport) -> str:
    """"City (CODE)", the value a picked airport puts in a search box"""
    return f"{airport.city} ({airport.code})"


def _score(airport: Airport, query: str) -> int:
    query_upper = query.upper()
    query_lower = query.lower()
    city = airport.city.lower()

    # Exact code match (highest priority)
    if airport.code == query_upper:
        return 1000
    if airport.code.startswith(query_upper):
        return 500
    if city.startswith(query_lower):
        return 300
    if query_lower in city:
        return 100
    if query_lower in airport.name.lower():
        return 50
    return 0


def search_airports(airports: Iterable[Airport], query: str, limit: int = None) -> List[Airport]:
    """
    Case-insensitive substring search over name, city and code.

    Matches are ranked: exact code, code prefix, city prefix, city contains,
    name contains. An empty query returns every airport in list order.
    """
    airports = list(airports)
    query = (query or "").strip()
    if not query:
        return airports[:limit] if limit else airports

    results = []
    for position, airport in enumerate(airports):
        score = _score(airport, query)
        if score > 0:
            results.append((-score, position, airport))
    results.sort(key=lambda item: (item[0], item[1]))

    matches = [airport for _, _, airport in results]
    return matches[:limit] if limit else matches


def resolve_airport(airports: Iterable[Airport], text: str) -> Optional[Airport]:
    """
    Resolve a search-box value to one airport.

    Accepts a city name, an IATA code, or a "City (CODE)" label, all
    case-insensitive. Returns None when nothing matches.
    """
    value = (text or "").strip()
    if not value:
        return None

    label_match = LABEL_CODE_PATTERN.search(value)
    label_code = label_match.group(1).upper() if label_match else None

    for airport in airports:
        if airport.city.lower() == value.lower():
            return airport
        if airport.code == value.upper():
            return airport
        if label_code and airport.code == label_code:
            return airport

    logger.info(f"No airport matches {value!r}")
    return None
