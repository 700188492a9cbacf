from jsonfunc.vendors import MutableHeaders, Response

TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"
JSON_CONTENT_TYPE = "application/json; charset=utf-8"


class ResponseWriter:
    """
    Buffered response handle of a single request.

    Wrapped functions, responders and the handler itself write status, headers
    and body here; nothing reaches the client until the handler turns the
    writer into a starlette `Response` with `to_response`.
    """

    __slots__ = ("_status", "_headers", "_body")

    def __init__(self) -> None:
        self._status: int | None = None
        self._headers = MutableHeaders()
        self._body = bytearray()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(status={self.status_code}, size={len(self._body)})"

    @property
    def headers(self) -> MutableHeaders:
        return self._headers

    @property
    def status_code(self) -> int:
        return self._status or 200

    @property
    def wrote_header(self) -> bool:
        return self._status is not None

    @property
    def body(self) -> bytes:
        return bytes(self._body)

    def write_header(self, status: int) -> None:
        "Set the status code, calls after the first one are ignored"
        if self._status is None:
            self._status = status

    def write(self, data: bytes | str) -> int:
        if self._status is None:
            self._status = 200
        if isinstance(data, str):
            data = data.encode("utf-8")
        self._body.extend(data)
        return len(data)

    def reset(self) -> None:
        """
        Discard the status and body written so far.

        Headers set earlier (cookies, tracing ids, ...) are kept.
        """
        self._status = None
        self._body.clear()
        if "content-length" in self._headers:
            del self._headers["content-length"]

    def replace(self, content: bytes | str, status: int, content_type: str) -> None:
        "Discard the status and body written so far and write `content` instead"
        self.reset()
        self._status = status
        self._headers["content-type"] = content_type
        self._headers["x-content-type-options"] = "nosniff"
        self.write(content)

    def error(self, message: str, status: int) -> None:
        "Replace the response with a single line plain text message"
        self.replace(message + "\n", status, TEXT_CONTENT_TYPE)

    def to_response(self) -> Response:
        return Response(
            content=bytes(self._body),
            status_code=self.status_code,
            headers=self._headers,
        )
