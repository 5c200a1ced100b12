"""httpx authentication for bearer tokens."""

from typing import Generator

from httpx import Auth, Request, Response


class BearerAuth(Auth):
    """Send ``Authorization: Bearer <token>`` with every request."""

    def __init__(self, token: str):
        self.token = token

    def auth_flow(self, request: Request) -> Generator[Request, Response, None]:
        request.headers["Authorization"] = f"Bearer {self.token}"
        yield request
