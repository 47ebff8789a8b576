"""Test helpers - hand-built Starlette requests and recording handlers."""

from starlette.requests import Request
from starlette.responses import PlainTextResponse


def make_request(
    method: str = "GET", path: str = "/", query_string: bytes = b"",
) -> Request:
    """A bodiless Starlette request for dispatcher- and route-level tests."""
    return Request({
        "type": "http",
        "method": method,
        "path": path,
        "root_path": "",
        "query_string": query_string,
        "headers": [],
        "scheme": "http",
        "server": ("test", 80),
    })


def text_endpoint(text: str, calls: list | None = None):
    """Endpoint answering `text`, appending `text` to `calls` when given."""
    async def endpoint(request, path_params=None):
        if calls is not None:
            calls.append(text)
        return PlainTextResponse(text)
    return endpoint
