from typing import Optional, Protocol

from fastapi import Request

USER_ID_HEADER = "x-user-id"


class MissingIdentityError(Exception):
    """Raised when a data request carries no usable user identifier."""

    message = "Missing user ID"


class IdentityResolver(Protocol):
    def resolve(self, request: Request) -> Optional[str]:
        ...


class HeaderIdentityResolver:
    """Trusts whatever the client puts in the identity header.

    Swap in another resolver (session cookie, bearer token, ...) through
    create_app(identity=...) without touching the store.
    """

    def __init__(self, header: str = USER_ID_HEADER):
        self.header = header

    def resolve(self, request: Request) -> Optional[str]:
        value = request.headers.get(self.header, "").strip()
        return value or None
