"""HTTP bindings of the racing and sports services."""

from .gateway import RouteBinding, ServiceDescriptor

RACING = ServiceDescriptor(
    name="racing.Racing",
    bindings=(
        RouteBinding("POST", "/v1/list-races", "ListRaces", body="*"),
        RouteBinding("GET", "/v1/races/{id}", "GetRace"),
    ),
)

SPORTS = ServiceDescriptor(
    name="sports.Sports",
    bindings=(
        RouteBinding("POST", "/v1/list-events", "ListEvents", body="*"),
        RouteBinding("GET", "/v1/events/{id}", "GetEvent"),
    ),
)
