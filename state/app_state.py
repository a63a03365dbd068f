"""
Application state container for Historical Friction.

Holds the place data model, the sonification mode enum and all mutable
session state in a centralized location for easy reset.
"""

import json
import math
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from utils.helpers import haversine_distance, initial_bearing, normalize_angle
from .constants import DEFAULT_LOCATION, DEFAULT_RADIUS, RADIUS_MIN, RADIUS_MAX


class SonificationMode(Enum):
    """Mutually exclusive sonification strategies."""
    AMBIENT = "AMBIENT"
    CACOPHONY = "CACOPHONY"
    MELODY = "MELODY"

    @property
    def label(self) -> str:
        """Human-readable mode name for announcements."""
        return self.value.capitalize()


def _as_float(value) -> Optional[float]:
    """Coerce a value to a finite float, or None if that is not possible."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


@dataclass(frozen=True)
class Place:
    """A geotagged article with distance and bearing from the listener."""
    id: int
    title: str
    distance: float
    bearing: Optional[float] = None
    activity: int = 0
    extract: Optional[str] = None
    lat: Optional[float] = None
    lon: Optional[float] = None

    @classmethod
    def from_dict(cls, data: dict) -> 'Place':
        """Build a place from a loosely-typed dictionary.

        Accepts the article field names (pageid, dist, editCount) as well
        as the native ones. Malformed values fall back to neutral
        defaults instead of raising: no bearing means a centered pan.

        Args:
            data: Dictionary describing one place

        Returns:
            A Place instance
        """
        raw_id = data.get('id', data.get('pageid', 0))
        try:
            place_id = int(raw_id)
        except (TypeError, ValueError):
            place_id = 0

        distance = _as_float(data.get('distance', data.get('dist')))
        bearing = _as_float(data.get('bearing'))
        activity = _as_float(data.get('activity', data.get('editCount')))
        extract = data.get('extract')

        return cls(
            id=place_id,
            title=str(data.get('title') or ''),
            distance=max(0.0, distance) if distance is not None else 0.0,
            bearing=normalize_angle(bearing) if bearing is not None else None,
            activity=max(0, int(activity)) if activity is not None else 0,
            extract=extract if isinstance(extract, str) else None,
            lat=_as_float(data.get('lat')),
            lon=_as_float(data.get('lon')),
        )

    @classmethod
    def from_article(cls, article: dict, lat: float, lng: float) -> 'Place':
        """Build a place from article data, measuring from a listener location.

        Args:
            article: Article dict with lat/lon (plus pageid, title, extract...)
            lat: Listener latitude
            lng: Listener longitude

        Returns:
            A Place with distance (meters) and bearing (degrees) filled in
        """
        data = dict(article)
        art_lat = _as_float(article.get('lat'))
        art_lon = _as_float(article.get('lon'))
        if art_lat is not None and art_lon is not None:
            data['distance'] = haversine_distance(lat, lng, art_lat, art_lon)
            data['bearing'] = initial_bearing(lat, lng, art_lat, art_lon)
        return cls.from_dict(data)


class AppState:
    """Container for all mutable session state."""

    def __init__(self):
        """Initialize session state with default values."""
        self.articles: List[dict] = []  # Raw article data, survives reset
        self.reset()

    def reset(self):
        """Reset all session state to initial values."""
        self.location = DEFAULT_LOCATION
        self.radius = DEFAULT_RADIUS
        self.places: List[Place] = []
        self.mode = SonificationMode.AMBIENT
        self.audio_enabled = False
        self.heading = 0.0

    def load_places_file(self, path: str) -> int:
        """Load article data from a JSON file.

        The file holds either a list of articles or an object with an
        optional "location" ({"lat", "lng"}) and an "articles"/"places" list.

        Args:
            path: Path to the JSON file

        Returns:
            Number of articles loaded

        Raises:
            OSError: If the file cannot be read
            ValueError: If the file is not JSON or holds no article list
        """
        with open(path, 'r', encoding='utf-8') as handle:
            data = json.load(handle)

        if isinstance(data, dict):
            location = data.get('location')
            if not isinstance(location, dict):
                location = {}
            lat = _as_float(location.get('lat'))
            lng = _as_float(location.get('lng', location.get('lon')))
            if lat is not None and lng is not None:
                self.location = (lat, lng)
            data = data.get('articles', data.get('places', []))
        if not isinstance(data, list):
            raise ValueError(f"Expected a list of articles in {path}, got {type(data).__name__}")

        self.articles = [a for a in data if isinstance(a, dict)]
        self.refresh_places()
        return len(self.articles)

    def refresh_places(self):
        """Recompute distance/bearing for every article and apply the radius."""
        lat, lng = self.location
        measured = [Place.from_article(a, lat, lng) for a in self.articles]
        self.places = sorted(
            (p for p in measured if p.distance <= self.radius),
            key=lambda p: p.distance
        )

    def set_radius(self, radius: float) -> float:
        """Set the listening radius (clamped) and re-filter places.

        Returns:
            The radius actually applied
        """
        self.radius = max(RADIUS_MIN, min(RADIUS_MAX, int(radius)))
        self.refresh_places()
        return self.radius

    def set_heading(self, heading: float):
        """Store the listener heading, normalized to 0-360."""
        self.heading = normalize_angle(heading)

    def next_mode(self) -> SonificationMode:
        """Cycle to the next sonification mode."""
        modes = list(SonificationMode)
        self.mode = modes[(modes.index(self.mode) + 1) % len(modes)]
        return self.mode

    @property
    def nearest_place(self) -> Optional[Place]:
        """Closest place inside the radius, if any."""
        return self.places[0] if self.places else None
