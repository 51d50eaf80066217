"""Pydantic models and raw row type for nearby rounds search."""
from datetime import datetime
from typing import NamedTuple

from pydantic import BaseModel, Field, model_validator

from src.geo.precision import DEFAULT_DATE_WINDOW_DAYS, DEFAULT_RADIUS_MILES, SEARCH_LIMITS

DEFAULT_PAGE_SIZE = 30
MAX_PAGE_SIZE = 100

ROUND_STATUSES = ("open", "closed", "canceled", "completed")
ROUND_VISIBILITIES = ("public", "friends")


class Candidate(NamedTuple):
    """Raw row returned by one geohash range query. lat/lng are None for rows without geo data."""

    id: str
    lat: float | None
    lng: float | None
    geohash: str
    start_time: datetime | None = None
    status: str = "open"
    visibility: str = "public"
    max_players: int = 4
    accepted_count: int = 1
    host_uid: str = ""
    chosen_tee_time: datetime | None = None

    @property
    def effective_start(self) -> datetime | None:
        """start_time, falling back to the chosen tee time."""
        return self.start_time or self.chosen_tee_time

    @property
    def is_full(self) -> bool:
        return self.accepted_count >= self.max_players


class NearbyPageCursor(BaseModel):
    """
    Position after the last item of a page. Geo searches resume after
    (last_distance_miles, last_id); discovery searches after (last_start_time, last_id).
    """

    last_id: str
    last_distance_miles: float | None = None
    last_start_time: datetime | None = None


class NearbySearchRequest(BaseModel):
    lat: float
    lng: float
    radius_miles: float = Field(default=DEFAULT_RADIUS_MILES, gt=0, le=SEARCH_LIMITS.max_radius_miles)
    date_window_days: int = Field(default=DEFAULT_DATE_WINDOW_DAYS, ge=0, le=SEARCH_LIMITS.max_date_window_days)
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)
    # None disables the status filter; visibility None means public only
    status: str | None = "open"
    visibility: str | None = None
    exclude_full_rounds: bool = True
    host_uid: str | None = None
    # Date-only search anywhere, ordered by start time; lat, lng and radius are not used
    discovery_mode: bool = False
    cursor: NearbyPageCursor | None = None

    @model_validator(mode="after")
    def check_coordinates(self):
        if not (-90 <= self.lat <= 90):
            raise ValueError("lat must be between -90 and 90")
        if not (-180 <= self.lng <= 180):
            raise ValueError("lng must be between -180 and 180")
        return self

    @model_validator(mode="after")
    def check_filters(self):
        if self.status is not None and self.status not in ROUND_STATUSES:
            raise ValueError(f"status must be one of {', '.join(ROUND_STATUSES)}")
        if self.visibility is not None and self.visibility not in ROUND_VISIBILITIES:
            raise ValueError(f"visibility must be one of {', '.join(ROUND_VISIBILITIES)}")
        return self


class NearbyResult(BaseModel):
    id: str
    # None in discovery mode, where no center point is searched
    distance_miles: float | None = None
    start_time: datetime | None = None


class SearchDebugInfo(BaseModel):
    ranges_queried: int
    candidates_fetched: int
    candidates_after_date: int
    candidates_after_distance: int
    results_count: int
    duration_ms: int
    precision: int


class NearbySearchResponse(BaseModel):
    items: list[NearbyResult]
    has_more: bool = False
    next_cursor: NearbyPageCursor | None = None
    # True when the candidate cap or a per-range limit was hit, so some rows may be missing
    is_truncated: bool = False
    debug: SearchDebugInfo | None = None
