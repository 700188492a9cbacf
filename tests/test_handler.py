import asyncio
import threading
from decimal import Decimal
from http import HTTPStatus
from typing import Any

import pytest
from msgspec import Struct

from jsonfunc import (
    CodeError,
    Context,
    DecodeError,
    EncodeError,
    HandlerConfig,
    NotJSONError,
    NotPostError,
    ResponseWriter,
    get_request,
    get_response,
    handler,
    set_config,
    status,
)
from jsonfunc.context import SCOPE_CONTEXT_KEY
from jsonfunc.errors import InvalidSignatureError, NotSupportedError
from jsonfunc.testing import LocalClient


class Amount(Struct):
    value: Decimal


class Order(Struct):
    item: str
    count: int


class Receipt(Struct):
    item: str
    total: int


class Teapot(Exception):
    def respond(self, writer: ResponseWriter) -> None:
        writer.headers["x-brew"] = "earl-grey"
        writer.write_header(418)
        writer.write(b"short and stout")


async def echo(
    ctx: Context, data: dict[str, Any]
) -> tuple[dict[str, Any], Exception | None]:
    return data, None


async def test_echo(lc: LocalClient):
    resp = await lc.post(
        handler(echo), body=b'{"a":1}', headers={"content-type": "application/json"}
    )

    assert resp.status_code == 200
    assert await resp.body() == b'{"a":1}'
    assert resp.headers["content-type"] == "application/json; charset=utf-8"


async def test_media_type_params_ignored(lc: LocalClient):
    resp = await lc.post(
        handler(echo),
        body=b'{"a":1}',
        headers={"content-type": "Application/JSON; charset=utf-8"},
    )
    assert resp.status_code == 200


async def test_get_is_rejected(lc: LocalClient):
    resp = await lc.request(
        handler(echo), "GET", headers={"content-type": "application/json"}
    )

    assert resp.status_code == 400
    assert "must be POST" in await resp.text()
    assert resp.headers["content-type"] == "text/plain; charset=utf-8"
    assert resp.headers["x-content-type-options"] == "nosniff"


async def test_wrong_content_type(lc: LocalClient):
    resp = await lc.post(
        handler(echo), body=b'{"a":1}', headers={"content-type": "text/plain"}
    )

    assert resp.status_code == 400
    text = await resp.text()
    assert "want application/json" in text
    assert "text/plain" in text


async def test_missing_content_type(lc: LocalClient):
    resp = await lc.post(handler(echo), body=b'{"a":1}')
    assert resp.status_code == 400
    assert "want application/json" in await resp.text()


async def test_malformed_body(lc: LocalClient):
    resp = await lc.post(
        handler(echo), body=b'{"a":', headers={"content-type": "application/json"}
    )

    assert resp.status_code == 400
    assert (await resp.text()).startswith("while decoding JSON request body: ")


async def test_body_of_wrong_type(lc: LocalClient):
    def place(order: Order) -> Receipt:
        return Receipt(order.item, order.count)

    resp = await lc.post(handler(place), body={"item": "tea", "count": "two"})

    assert resp.status_code == 400
    assert "while decoding JSON request body" in await resp.text()


async def test_struct_params(lc: LocalClient):
    def place(order: Order) -> Receipt:
        return Receipt(order.item, order.count * 3)

    resp = await lc.post(handler(place), body=Order("tea", 2))

    assert resp.status_code == 200
    assert await resp.json() == {"item": "tea", "total": 6}


async def test_code_error(lc: LocalClient):
    def find(ctx: Context, order: Order) -> tuple[Receipt | None, CodeError | None]:
        return None, CodeError(status.NOT_FOUND)

    resp = await lc.post(handler(find), body=Order("tea", 1))

    assert resp.status_code == 404
    assert await resp.text() == "HTTP 404: Not Found\n"


async def test_wrapped_code_error(lc: LocalClient):
    class OutOfStock(Exception): ...

    def find(order: Order) -> tuple[Receipt | None, Exception | None]:
        try:
            raise CodeError(409)
        except CodeError as exc:
            err = OutOfStock(f"no {order.item} left")
            err.__cause__ = exc
            return None, err

    resp = await lc.post(handler(find), body=Order("tea", 1))

    assert resp.status_code == 409
    assert await resp.text() == "no tea left\n"


async def test_error_raised_while_handling_code_error(lc: LocalClient):
    def find(order: Order) -> Receipt:
        try:
            raise CodeError(status.NOT_FOUND)
        except CodeError:
            raise RuntimeError(f"lookup of {order.item} crashed")

    resp = await lc.post(handler(find), body=Order("tea", 1))

    assert resp.status_code == 500
    assert await resp.text() == "lookup of tea crashed\n"


async def test_plain_error(lc: LocalClient):
    def fail(order: Order) -> tuple[Receipt, Exception | None]:
        return Receipt("", 0), RuntimeError("kettle broke")

    resp = await lc.post(handler(fail), body=Order("tea", 1))

    assert resp.status_code == 500
    assert await resp.text() == "kettle broke\n"


async def test_raised_error(lc: LocalClient):
    def fail(order: Order) -> Receipt:
        raise CodeError(status.UNPROCESSABLE_ENTITY, ValueError("count too big"))

    resp = await lc.post(handler(fail), body=Order("tea", 1))

    assert resp.status_code == 422
    phrase = HTTPStatus(422).phrase
    assert await resp.text() == f"HTTP 422: {phrase}: count too big\n"


async def test_responder(lc: LocalClient):
    def brew(ctx: Context) -> Exception | None:
        return Teapot("ignored message")

    resp = await lc.post(handler(brew), headers={"content-type": "application/json"})

    assert resp.status_code == 418
    assert await resp.body() == b"short and stout"
    assert resp.headers["x-brew"] == "earl-grey"
    assert "content-type" not in resp.headers


@pytest.mark.parametrize(
    "literal",
    ["123456789012345678901234567890", "123456789012345678901234567890.123456789"],
)
async def test_arbitrary_precision(lc: LocalClient, literal: str):
    def exact(amount: Amount) -> str:
        assert amount.value == Decimal(literal)
        return str(amount.value)

    resp = await lc.post(
        handler(exact),
        body=f'{{"value": {literal}}}'.encode(),
        headers={"content-type": "application/json"},
    )

    assert resp.status_code == 200
    assert await resp.json() == literal


async def test_untyped_numbers_round_trip(lc: LocalClient):
    body = b'{"v":0.1000000000000000055511151231257827021181583404541015625}'
    resp = await lc.post(
        handler(echo), body=body, headers={"content-type": "application/json"}
    )

    assert resp.status_code == 200
    assert await resp.body() == body


async def test_untyped_big_integer_round_trip(lc: LocalClient):
    body = b'{"a":123456789012345678901234567890}'
    resp = await lc.post(
        handler(echo), body=body, headers={"content-type": "application/json"}
    )

    assert resp.status_code == 200
    assert await resp.body() == body


async def test_imprecise_numbers(lc: LocalClient):
    seen: list[Any] = []

    def keep(data: dict[str, Any]) -> None:
        seen.append(data["v"])

    config = HandlerConfig(precise_numbers=False)
    resp = await lc.post(
        handler(keep, config=config),
        body=b'{"v": 1.5}',
        headers={"content-type": "application/json"},
    )

    assert resp.status_code == 204
    assert seen == [1.5] and isinstance(seen[0], float)


async def test_no_return_value(lc: LocalClient):
    calls: list[Order] = []

    def record(order: Order) -> None:
        calls.append(order)

    resp = await lc.post(handler(record), body=Order("tea", 1))

    assert resp.status_code == 204
    assert await resp.body() == b""
    assert calls == [Order("tea", 1)]


async def test_no_return_value_with_error(lc: LocalClient):
    def record(ctx: Context, order: Order) -> ValueError | None:
        return None

    resp = await lc.post(handler(record), body=Order("tea", 1))
    assert resp.status_code == 204
    assert await resp.body() == b""

    def reject(ctx: Context, order: Order) -> ValueError | None:
        return ValueError("rejected")

    resp = await lc.post(handler(reject), body=Order("tea", 1))
    assert resp.status_code == 500
    assert await resp.text() == "rejected\n"


async def test_encode_error(lc: LocalClient):
    sunk: list[BaseException] = []

    def opaque(ctx: Context) -> Any:
        return object()

    resp = await lc.post(
        handler(opaque, lambda ctx, exc: sunk.append(exc)),
        headers={"content-type": "application/json"},
    )

    assert resp.status_code == 400
    assert (await resp.text()).startswith("while encoding JSON response: ")
    assert len(sunk) == 1 and isinstance(sunk[0], EncodeError)


async def test_bad_pair_result(lc: LocalClient):
    def sloppy(ctx: Context) -> tuple[int, ValueError | None]:
        return 5  # type: ignore

    resp = await lc.post(handler(sloppy), headers={"content-type": "application/json"})

    assert resp.status_code == 500
    assert "(value, error) pair" in await resp.text()


async def test_function_sets_status_and_headers(lc: LocalClient):
    def create(ctx: Context, order: Order) -> Receipt:
        writer = get_response(ctx)
        assert writer is not None
        writer.headers["location"] = f"/orders/{order.item}"
        writer.write_header(201)
        return Receipt(order.item, order.count)

    resp = await lc.post(handler(create), body=Order("tea", 1))

    assert resp.status_code == 201
    assert resp.headers["location"] == "/orders/tea"
    assert await resp.json() == {"item": "tea", "total": 1}


async def test_responder_overrides_partial_response(lc: LocalClient):
    def brew(ctx: Context) -> Exception | None:
        writer = get_response(ctx)
        assert writer is not None
        writer.write_header(201)
        writer.write(b"half a cup")
        return Teapot("ignored message")

    resp = await lc.post(handler(brew), headers={"content-type": "application/json"})

    assert resp.status_code == 418
    assert await resp.body() == b"short and stout"


async def test_context_carries_request(lc: LocalClient):
    def agent(ctx: Context) -> str:
        request = get_request(ctx)
        assert request is not None
        return request.headers["user-agent"]

    resp = await lc.post(handler(agent), headers={"content-type": "application/json"})
    assert await resp.json() == "jsonfunc-test-client"


async def test_sink_called_once_after_response():
    events: list[str] = []
    sunk: list[tuple[Context, BaseException]] = []

    def on_error(ctx: Context, exc: BaseException) -> None:
        events.append("sink")
        sunk.append((ctx, exc))

    app = handler(echo, on_error)

    async def receive() -> dict[str, Any]:
        return {"type": "http.request", "body": b"", "more_body": False}

    async def send(message: dict[str, Any]) -> None:
        events.append(message["type"])

    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "query_string": b"",
        "headers": [],
    }
    await app(scope, receive, send)

    assert events == ["http.response.start", "http.response.body", "sink"]
    ((ctx, exc),) = sunk
    assert isinstance(exc, NotPostError)
    assert get_request(ctx) is not None


async def test_sink_not_called_on_success(lc: LocalClient):
    sunk: list[BaseException] = []

    async def on_error(ctx: Context, exc: BaseException) -> None:
        sunk.append(exc)

    app = handler(echo, on_error)
    resp = await lc.post(app, body={"a": 1})

    assert resp.status_code == 200
    assert sunk == []

    resp = await lc.post(app, body=b"[", headers={"content-type": "application/json"})
    assert resp.status_code == 400
    assert len(sunk) == 1 and isinstance(sunk[0], DecodeError)

    resp = await lc.post(app, body=b"{}", headers={"content-type": "text/csv"})
    assert len(sunk) == 2 and isinstance(sunk[1], NotJSONError)


async def test_sync_function_runs_in_thread(lc: LocalClient):
    def whoami() -> str:
        return threading.current_thread().name

    main = threading.current_thread().name
    headers = {"content-type": "application/json"}

    resp = await lc.post(handler(whoami), headers=headers)
    assert await resp.json() != main

    inline = handler(whoami, config=HandlerConfig(to_thread=False))
    resp = await lc.post(inline, headers=headers)
    assert await resp.json() == main


async def test_global_config(lc: LocalClient):
    set_config(HandlerConfig(error_format="problem"))

    resp = await lc.request(handler(echo), "PUT")

    assert resp.status_code == 400
    assert resp.headers["content-type"] == "application/problem+json"
    assert await resp.json() == {
        "type": "not-post-error",
        "title": "Bad Request",
        "status": 400,
        "detail": "HTTP method is PUT but must be POST",
    }


async def test_parent_context_cancellation(lc: LocalClient):
    parent = Context()
    parent.cancel()

    def check(ctx: Context) -> bool:
        return ctx.cancelled

    resp = await lc.post(
        handler(check),
        headers={"content-type": "application/json"},
        state={SCOPE_CONTEXT_KEY: parent},
    )
    assert await resp.json() is True

    resp = await lc.post(handler(check), headers={"content-type": "application/json"})
    assert await resp.json() is False


async def test_client_disconnect_cancels(lc: LocalClient):
    async def wait(ctx: Context, order: Order) -> bool:
        for _ in range(100):
            if ctx.cancelled:
                break
            await asyncio.sleep(0)
        return ctx.cancelled

    resp = await lc.post(handler(wait), body=Order("tea", 1), disconnect=True)
    assert await resp.json() is True

    resp = await lc.post(handler(wait), body=Order("tea", 1))
    assert await resp.json() is False


async def test_non_http_scope():
    app = handler(echo)

    async def receive() -> dict[str, Any]:
        return {}

    async def send(message: dict[str, Any]) -> None: ...

    with pytest.raises(NotSupportedError):
        await app({"type": "websocket"}, receive, send)


def test_undecodable_param_type():
    class Kettle:
        pass

    def boil(kettle: Kettle) -> None: ...

    with pytest.raises(InvalidSignatureError, match="can't be decoded"):
        handler(boil)


def test_handler_properties():
    app = handler(echo)
    assert app.func is echo
    assert app.signature.has_context
    assert app.on_error is None
    assert app.config == HandlerConfig()
    assert repr(app) == "JSONHandler(echo)"
