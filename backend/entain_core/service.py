from __future__ import annotations

from typing import Optional

from .models import Event, ListEventsResponse, ListFilter, ListRacesResponse, Race
from .repository import EventsRepo, Lookup, RacesRepo


class RacingService:
    """Racing RPC methods backed by a races repository."""

    def __init__(self, races_repo: RacesRepo) -> None:
        self.races_repo = races_repo

    def list_races(self, list_filter: Optional[ListFilter] = None) -> ListRacesResponse:
        return ListRacesResponse(races=self.races_repo.list(list_filter))

    def get_race(self, race_id: int) -> Lookup[Race]:
        return self.races_repo.get(race_id)


class SportsService:
    """Sports RPC methods backed by an events repository."""

    def __init__(self, events_repo: EventsRepo) -> None:
        self.events_repo = events_repo

    def list_events(self, list_filter: Optional[ListFilter] = None) -> ListEventsResponse:
        return ListEventsResponse(events=self.events_repo.list(list_filter))

    def get_event(self, event_id: int) -> Lookup[Event]:
        return self.events_repo.get(event_id)
