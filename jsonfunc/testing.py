from typing import Any, MutableMapping, Optional, Union

from msgspec import Struct
from msgspec.json import decode as json_decode
from msgspec.json import encode as json_encode

from jsonfunc.interface import ASGIApp, Base, StrDict


class RequestResult(Base):
    """Represents the result of a request made to an ASGI application."""

    status_code: int
    headers: dict[str, str]
    body_chunks: list[bytes] = []
    _body: Optional[bytes] = None

    def __post_init__(self):
        self.headers = dict(self.headers)

    async def body(self) -> bytes:
        """Return the complete response body."""
        if self._body is None:
            self._body = b"".join(self.body_chunks)
            self.body_chunks = []
        return self._body

    async def text(self) -> str:
        """Return the response body as text."""
        body = await self.body()
        encoding = self._get_content_encoding() or "utf-8"
        return body.decode(encoding)

    async def json(self) -> Any:
        """Return the response body as parsed JSON."""
        result = await self.body()
        return json_decode(result)

    @property
    def content_type(self) -> str:
        return self.headers.get("content-type", "")

    def _get_content_encoding(self) -> Optional[str]:
        """Extract encoding from Content-Type header."""
        content_type = self.content_type
        if "charset=" in content_type:
            return content_type.split("charset=")[1].split(";")[0].strip()
        return None


class LocalClient:
    """
    A client for testing ASGI applications in process.

    ```python
    lc = LocalClient()
    resp = await lc.post(handler(echo), body={"a": 1})
    assert resp.status_code == 200
    ```
    """

    def __init__(self, headers: dict[str, str] | None = None):
        self.base_headers: dict[str, str] = {
            "user-agent": "jsonfunc-test-client",
        }
        if headers:
            self.base_headers.update(headers)

    async def request(
        self,
        app: ASGIApp,
        method: str,
        path: str = "/",
        headers: Optional[dict[str, str]] = None,
        body: Optional[Union[bytes, str, StrDict, list[Any], Struct]] = None,
        state: Optional[StrDict] = None,
        disconnect: bool = False,
    ) -> RequestResult:
        """
        Send one request to `app`.

        `body` other than bytes / str is json encoded and labeled as json
        unless `headers` carries its own content-type. With `disconnect`, the
        client reports `http.disconnect` once the body has been delivered.
        """
        request_headers = self.base_headers.copy()

        if body is None:
            body_bytes = b""
        elif isinstance(body, bytes):
            body_bytes = body
        elif isinstance(body, str):
            body_bytes = body.encode("utf-8")
        else:
            body_bytes = json_encode(body)
            request_headers["content-type"] = "application/json"

        if headers:
            request_headers.update({k.lower(): v for k, v in headers.items()})

        asgi_headers = [
            (k.lower().encode("latin-1"), v.encode("latin-1"))
            for k, v in request_headers.items()
        ]

        scope: StrDict = {
            "type": "http",
            "method": method.upper(),
            "path": path,
            "raw_path": path.encode("utf-8"),
            "root_path": "",
            "scheme": "http",
            "query_string": b"",
            "headers": asgi_headers,
            "client": ("127.0.0.1", 12345),
            "server": ("testserver", 80),
            "asgi": {"version": "3.0", "spec_version": "2.4"},
            "http_version": "1.1",
        }
        if state is not None:
            scope["state"] = state

        response_status = None
        response_headers: list[tuple[bytes, bytes]] = []
        response_body_chunks: list[bytes] = []
        body_sent = False

        async def receive():
            nonlocal body_sent
            if body_sent and disconnect:
                return {"type": "http.disconnect"}
            body_sent = True
            return {
                "type": "http.request",
                "body": body_bytes,
                "more_body": False,
            }

        async def send(message: MutableMapping[str, Any]):
            nonlocal response_status, response_headers

            if message["type"] == "http.response.start":
                response_status = message["status"]
                response_headers = message.get("headers", [])
            elif message["type"] == "http.response.body":
                chunk = message.get("body", b"")
                if chunk:
                    response_body_chunks.append(chunk)

        await app(scope, receive, send)

        headers_dict: dict[str, str] = {}
        for name, value in response_headers:
            headers_dict[name.decode("latin1").lower()] = value.decode("latin1")

        return RequestResult(
            status_code=response_status or 500,
            headers=headers_dict,
            body_chunks=response_body_chunks,
        )

    async def post(
        self,
        app: ASGIApp,
        path: str = "/",
        headers: Optional[dict[str, str]] = None,
        body: Optional[Union[bytes, str, StrDict, list[Any], Struct]] = None,
        **kwargs: Any,
    ) -> RequestResult:
        return await self.request(
            app, "POST", path, headers=headers, body=body, **kwargs
        )
