"""Core racing and sports domain: queries, repositories, services and gateway."""

from .errors import EntainError, MappingError, RegistrationError, StoreError
from .models import Event, ListFilter, Race, Status
from .repository import EventsRepo, Found, NotFound, RacesRepo
from .service import RacingService, SportsService

__all__ = [
    "EntainError",
    "Event",
    "EventsRepo",
    "Found",
    "ListFilter",
    "MappingError",
    "NotFound",
    "Race",
    "RacesRepo",
    "RacingService",
    "RegistrationError",
    "SportsService",
    "Status",
    "StoreError",
]
