from __future__ import annotations

import datetime as dt
import logging
import threading
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from entain_core import EntainError, ListFilter, MappingError, NotFound, Race, RacesRepo, RacingService, Status, StoreError
from entain_core.config import Settings
from entain_core.database import build_engine
from entain_core.descriptors import RACING

app = FastAPI(title="Racing Service", version="1.0.0")

logger = logging.getLogger(__name__)

_service_lock = threading.Lock()
_service: Optional[RacingService] = None


class ListRacesRequestFilter(BaseModel):
    meeting_ids: List[int] = Field(default_factory=list, alias="meetingIds")
    visible_only: bool = Field(default=False, alias="visibleOnly")
    order_by: Optional[str] = Field(default=None, alias="orderBy")

    model_config = ConfigDict(populate_by_name=True)

    def to_filter(self) -> ListFilter:
        return ListFilter(ids=list(self.meeting_ids), visible_only=self.visible_only, order_by=self.order_by)


class ListRacesRequest(BaseModel):
    filter: Optional[ListRacesRequestFilter] = None


class GetRaceRequest(BaseModel):
    id: int


class RaceModel(BaseModel):
    id: int
    meeting_id: int = Field(alias="meetingId")
    name: str
    number: int
    visible: bool
    advertised_start_time: dt.datetime = Field(alias="advertisedStartTime")
    status: Status

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_record(cls, race: Race) -> "RaceModel":
        return cls(
            id=race.id,
            meeting_id=race.meeting_id,
            name=race.name,
            number=race.number,
            visible=race.visible,
            advertised_start_time=race.advertised_start_time,
            status=race.status,
        )


class ListRacesResponseModel(BaseModel):
    races: List[RaceModel]


def racing_service() -> RacingService:
    """Process-wide service, built once even under concurrent first requests."""

    global _service
    if _service is None:
        with _service_lock:
            if _service is None:
                settings = Settings.from_env()
                repo = RacesRepo(build_engine(settings.racing_database_url), seed_count=settings.seed_record_count)
                _service = RacingService(repo)
    return _service


def ready_service(service: RacingService = Depends(racing_service)) -> RacingService:
    try:
        service.races_repo.init()
    except EntainError as exc:
        logger.exception("Racing store initialisation failed")
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return service


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post(RACING.rpc_path("ListRaces"), response_model=ListRacesResponseModel)
def list_races(payload: ListRacesRequest, service: RacingService = Depends(ready_service)):
    list_filter = payload.filter.to_filter() if payload.filter else None
    try:
        response = service.list_races(list_filter)
    except (StoreError, MappingError) as exc:
        logger.exception("ListRaces failed")
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return ListRacesResponseModel(races=[RaceModel.from_record(race) for race in response.races])


@app.post(RACING.rpc_path("GetRace"), response_model=RaceModel)
def get_race(payload: GetRaceRequest, service: RacingService = Depends(ready_service)):
    try:
        outcome = service.get_race(payload.id)
    except (StoreError, MappingError) as exc:
        logger.exception("GetRace failed for id %s", payload.id)
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    if isinstance(outcome, NotFound):
        raise HTTPException(status_code=404, detail=f"race {outcome.id} not found")
    return RaceModel.from_record(outcome.record)
