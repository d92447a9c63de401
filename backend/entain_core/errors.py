from __future__ import annotations


class EntainError(Exception):
    """Base class for errors raised by the racing and sports services."""


class StoreError(EntainError):
    """The record store failed to execute a statement."""


class MappingError(EntainError):
    """A result row could not be converted into a domain record."""


class RegistrationError(EntainError):
    """The gateway could not bind a backend service."""

    def __init__(self, service: str, endpoint: str, reason: str) -> None:
        super().__init__(f"failed to register {service} at '{endpoint}': {reason}")
        self.service = service
        self.endpoint = endpoint
        self.reason = reason
