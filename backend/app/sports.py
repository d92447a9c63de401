from __future__ import annotations

import datetime as dt
import logging
import threading
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from entain_core import EntainError, Event, EventsRepo, ListFilter, MappingError, NotFound, SportsService, Status, StoreError
from entain_core.config import Settings
from entain_core.database import build_engine
from entain_core.descriptors import SPORTS

app = FastAPI(title="Sports Service", version="1.0.0")

logger = logging.getLogger(__name__)

_service_lock = threading.Lock()
_service: Optional[SportsService] = None


class ListEventsRequestFilter(BaseModel):
    sport_ids: List[int] = Field(default_factory=list, alias="sportIds")
    visible_only: bool = Field(default=False, alias="visibleOnly")
    order_by: Optional[str] = Field(default=None, alias="orderBy")

    model_config = ConfigDict(populate_by_name=True)

    def to_filter(self) -> ListFilter:
        return ListFilter(ids=list(self.sport_ids), visible_only=self.visible_only, order_by=self.order_by)


class ListEventsRequest(BaseModel):
    filter: Optional[ListEventsRequestFilter] = None


class GetEventRequest(BaseModel):
    id: int


class EventModel(BaseModel):
    id: int
    sport_id: int = Field(alias="sportId")
    name: str
    number: int
    visible: bool
    advertised_start_time: dt.datetime = Field(alias="advertisedStartTime")
    status: Status

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_record(cls, event: Event) -> "EventModel":
        return cls(
            id=event.id,
            sport_id=event.sport_id,
            name=event.name,
            number=event.number,
            visible=event.visible,
            advertised_start_time=event.advertised_start_time,
            status=event.status,
        )


class ListEventsResponseModel(BaseModel):
    events: List[EventModel]


def sports_service() -> SportsService:
    """Process-wide service, built once even under concurrent first requests."""

    global _service
    if _service is None:
        with _service_lock:
            if _service is None:
                settings = Settings.from_env()
                repo = EventsRepo(build_engine(settings.sports_database_url), seed_count=settings.seed_record_count)
                _service = SportsService(repo)
    return _service


def ready_service(service: SportsService = Depends(sports_service)) -> SportsService:
    try:
        service.events_repo.init()
    except EntainError as exc:
        logger.exception("Sports store initialisation failed")
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return service


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post(SPORTS.rpc_path("ListEvents"), response_model=ListEventsResponseModel)
def list_events(payload: ListEventsRequest, service: SportsService = Depends(ready_service)):
    list_filter = payload.filter.to_filter() if payload.filter else None
    try:
        response = service.list_events(list_filter)
    except (StoreError, MappingError) as exc:
        logger.exception("ListEvents failed")
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return ListEventsResponseModel(events=[EventModel.from_record(event) for event in response.events])


@app.post(SPORTS.rpc_path("GetEvent"), response_model=EventModel)
def get_event(payload: GetEventRequest, service: SportsService = Depends(ready_service)):
    try:
        outcome = service.get_event(payload.id)
    except (StoreError, MappingError) as exc:
        logger.exception("GetEvent failed for id %s", payload.id)
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    if isinstance(outcome, NotFound):
        raise HTTPException(status_code=404, detail=f"event {outcome.id} not found")
    return EventModel.from_record(outcome.record)
