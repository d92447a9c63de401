"""
HTTP/JSON to RPC dispatch for the API gateway.

A ``ServiceDescriptor`` lists the HTTP bindings of one backend service. Each
binding maps an HTTP method and path onto an RPC method; registering a
descriptor against an endpoint adds one FastAPI route per binding that
forwards the request message to ``POST /<service>/<method>`` on the backend
and relays the backend's status code and JSON body unchanged.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

import httpx
from fastapi import Body, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from .config import split_endpoint
from .errors import RegistrationError

logger = logging.getLogger(__name__)

HTTP_METHODS = {"GET", "POST", "PUT", "PATCH", "DELETE"}
PATH_PARAM = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")
RPC_METHOD = re.compile(r"^[A-Z][A-Za-z0-9]*$")

ClientFactory = Callable[[str, float], httpx.Client]


@dataclass(frozen=True)
class RouteBinding:
    """One HTTP annotation: ``body="*"`` sends the whole JSON body as the message."""

    method: str
    path: str
    rpc_method: str
    body: str = ""

    def path_params(self) -> List[str]:
        return PATH_PARAM.findall(self.path)


@dataclass(frozen=True)
class ServiceDescriptor:
    name: str
    bindings: Tuple[RouteBinding, ...]

    def rpc_path(self, rpc_method: str) -> str:
        return f"/{self.name}/{rpc_method}"


def default_client_factory(base_url: str, timeout: float) -> httpx.Client:
    # Plain HTTP: backends are reached without TLS or credentials.
    return httpx.Client(base_url=base_url, timeout=timeout)


class BackendChannel:
    """Connection to one backend service at a fixed endpoint."""

    def __init__(self, descriptor: ServiceDescriptor, endpoint: str, client: httpx.Client) -> None:
        self.descriptor = descriptor
        self.endpoint = endpoint
        self.client = client

    def forward(self, rpc_method: str, message: Dict[str, Any]) -> JSONResponse:
        path = self.descriptor.rpc_path(rpc_method)
        try:
            response = self.client.post(path, json=message)
        except httpx.HTTPError as exc:
            logger.warning("%s call to %s failed (%s)", path, self.endpoint, exc)
            raise HTTPException(status_code=503, detail=f"{self.descriptor.name} is unavailable") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            logger.warning("%s returned a non-JSON body (status %s)", path, response.status_code)
            raise HTTPException(status_code=502, detail=f"{self.descriptor.name} returned an invalid response") from exc

        return JSONResponse(status_code=response.status_code, content=payload)

    def close(self) -> None:
        self.client.close()


class ServeMux:
    """Route table of the gateway app and the backend channels it dispatches to."""

    def __init__(
        self,
        app: FastAPI,
        timeout: float = 10.0,
        client_factory: Optional[ClientFactory] = None,
    ) -> None:
        self.app = app
        self.timeout = timeout
        self.client_factory = client_factory or default_client_factory
        self.channels: Dict[str, BackendChannel] = {}

    def registered_routes(self) -> Set[Tuple[str, str]]:
        routes: Set[Tuple[str, str]] = set()
        for route in self.app.router.routes:
            for method in getattr(route, "methods", None) or ():
                routes.add((method, getattr(route, "path", "")))
        return routes

    def close(self) -> None:
        for channel in self.channels.values():
            channel.close()
        self.channels.clear()


def _validate_bindings(mux: ServeMux, descriptor: ServiceDescriptor, endpoint: str) -> None:
    def fail(reason: str) -> RegistrationError:
        return RegistrationError(descriptor.name, endpoint, reason)

    if descriptor.name in mux.channels:
        raise fail("service is already registered")
    if not descriptor.bindings:
        raise fail("descriptor has no HTTP bindings")

    taken = mux.registered_routes()
    for binding in descriptor.bindings:
        label = f"{binding.method} {binding.path}"
        if binding.method not in HTTP_METHODS:
            raise fail(f"unsupported HTTP method in '{label}'")
        if not RPC_METHOD.match(binding.rpc_method):
            raise fail(f"invalid RPC method name '{binding.rpc_method}'")
        if not binding.path.startswith("/"):
            raise fail(f"path must start with '/' in '{label}'")
        if "{" in PATH_PARAM.sub("", binding.path) or "}" in PATH_PARAM.sub("", binding.path):
            raise fail(f"malformed path parameter in '{label}'")
        if binding.body not in ("", "*"):
            raise fail(f"unsupported body selector '{binding.body}' in '{label}'")
        if binding.body and binding.method == "GET":
            raise fail(f"GET binding cannot carry a body in '{label}'")
        if (binding.method, binding.path) in taken:
            raise fail(f"route '{label}' is already registered")
        taken.add((binding.method, binding.path))


def _query_message(request: Request) -> Dict[str, Any]:
    """Query parameters as a message; repeated keys become lists."""

    message: Dict[str, Any] = {}
    for key, value in request.query_params.multi_items():
        if key not in message:
            message[key] = value
        elif isinstance(message[key], list):
            message[key].append(value)
        else:
            message[key] = [message[key], value]
    return message


def _make_handler(channel: BackendChannel, binding: RouteBinding) -> Callable[..., JSONResponse]:
    if binding.body == "*":

        def handler(request: Request, payload: Optional[Dict[str, Any]] = Body(default=None)) -> JSONResponse:
            message: Dict[str, Any] = dict(payload or {})
            message.update(request.path_params)
            return channel.forward(binding.rpc_method, message)

    else:

        def handler(request: Request) -> JSONResponse:
            message = _query_message(request)
            message.update(request.path_params)
            return channel.forward(binding.rpc_method, message)

    return handler


def register_handler_from_endpoint(mux: ServeMux, descriptor: ServiceDescriptor, endpoint: str) -> BackendChannel:
    """Bind every HTTP route of ``descriptor`` to the backend at ``endpoint``.

    Raises ``RegistrationError`` without adding any route when the endpoint
    is not ``host:port`` or the descriptor's bindings are unusable.
    """

    try:
        split_endpoint(endpoint)
    except ValueError as exc:
        raise RegistrationError(descriptor.name, endpoint, str(exc)) from exc

    _validate_bindings(mux, descriptor, endpoint)

    client = mux.client_factory(f"http://{endpoint.strip()}", mux.timeout)
    channel = BackendChannel(descriptor, endpoint, client)
    mux.channels[descriptor.name] = channel

    for binding in descriptor.bindings:
        mux.app.add_api_route(
            binding.path,
            _make_handler(channel, binding),
            methods=[binding.method],
            name=f"{descriptor.name}.{binding.rpc_method}",
        )

    logger.info("Registered %s at %s (%s routes)", descriptor.name, endpoint, len(descriptor.bindings))
    return channel
