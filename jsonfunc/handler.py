import logging
from asyncio import create_task
from concurrent.futures.thread import ThreadPoolExecutor
from inspect import isawaitable
from typing import Any, Awaitable, Callable

from msgspec import DecodeError as MsgspecDecodeError
from msgspec import MsgspecError

from jsonfunc.config import HandlerConfig, get_config
from jsonfunc.context import SCOPE_CONTEXT_KEY, Context, RequestContext
from jsonfunc.errors import InvalidSignatureError, NotSupportedError
from jsonfunc.interface import IBodyDecoder, IEncoder, IReceive, IScope, ISend
from jsonfunc.problems import (
    DecodeError,
    EncodeError,
    NotJSONError,
    NotPostError,
    resolve_error,
)
from jsonfunc.signature import FunctionSignature, inspect_function
from jsonfunc.utils.json import decoder_factory, encoder_factory
from jsonfunc.utils.threading import async_wrapper
from jsonfunc.vendors import Request
from jsonfunc.writer import JSON_CONTENT_TYPE, ResponseWriter

logger = logging.getLogger(__name__)

JSON_MEDIA_TYPE = "application/json"

ErrorSink = Callable[[Context, BaseException], None | Awaitable[None]]
"Observer called once for every failed request, after the response is sent"


def media_type(content_type: str) -> str:
    "application/json; charset=utf-8 -> application/json"
    return content_type.partition(";")[0].strip().lower()


def parent_context(scope: IScope) -> Context | None:
    state = scope.get("state")
    if not state:
        return None
    parent = state.get(SCOPE_CONTEXT_KEY)
    return parent if isinstance(parent, Context) else None


async def watch_disconnect(receive: IReceive, ctx: Context) -> None:
    "Cancel `ctx` if the client goes away, stop at the first other message"
    message = await receive()
    if message["type"] == "http.disconnect":
        ctx.cancel()


class JSONHandler:
    """
    An ASGI app serving a single function over POST + JSON.

    ```python
    async def create_user(ctx: Context, user: NewUser) -> tuple[User, CodeError | None]: ...

    app = Starlette(routes=[Route("/users", handler(create_user))])
    ```

    The function is inspected once, here; a function of unsupported shape
    raises `InvalidSignatureError`. Instances hold no per-request state and
    are shared by every request of the route.
    """

    __slots__ = (
        "_func",
        "_sig",
        "_on_error",
        "_config",
        "_call",
        "_decoder",
        "_encoder",
    )

    def __init__(
        self,
        func: Callable[..., Any],
        on_error: ErrorSink | None = None,
        *,
        config: HandlerConfig | None = None,
        workers: ThreadPoolExecutor | None = None,
    ):
        self._func = func
        self._sig: FunctionSignature = inspect_function(func)
        self._on_error = on_error
        self._config = config if config is not None else get_config()
        self._call = async_wrapper(
            func, threaded=self._config.to_thread, workers=workers
        )
        self._decoder: IBodyDecoder[Any] | None = self._build_decoder()
        self._encoder: IEncoder | None = self._build_encoder()

    def __repr__(self) -> str:
        name = getattr(self._func, "__qualname__", repr(self._func))
        return f"{self.__class__.__name__}({name})"

    @property
    def func(self) -> Callable[..., Any]:
        return self._func

    @property
    def signature(self) -> FunctionSignature:
        return self._sig

    @property
    def on_error(self) -> ErrorSink | None:
        return self._on_error

    @property
    def config(self) -> HandlerConfig:
        return self._config

    def _build_decoder(self) -> IBodyDecoder[Any] | None:
        if not self._sig.has_param:
            return None
        param_type = self._sig.param_type
        try:
            return decoder_factory(
                param_type,
                strict=self._config.strict,
                precise=self._config.precise_numbers,
            )
        except TypeError as exc:
            raise InvalidSignatureError(
                self._func, f"parameter type {param_type!r} can't be decoded from json"
            ) from exc

    def _build_encoder(self) -> IEncoder | None:
        if not self._sig.has_return:
            return None
        return encoder_factory(
            self._sig.return_type, precise=self._config.precise_numbers
        )

    def _split_result(self, result: Any) -> tuple[Any, BaseException | None]:
        sig = self._sig
        if not sig.has_error:
            return result, None

        if sig.has_return:
            if not (isinstance(result, tuple) and len(result) == 2):
                raise TypeError(
                    f"{self!r} must return a (value, error) pair, got {type(result)}"
                )
            value, err = result
        else:
            value, err = None, result

        if err is not None and not isinstance(err, BaseException):
            raise TypeError(f"{self!r} returned a non exception error {err!r}")
        return value, err

    async def _invoke(
        self, ctx: RequestContext, args: list[Any], receive: IReceive | None
    ) -> Any:
        if receive is None:
            return await self._call(*args)

        watcher = create_task(watch_disconnect(receive, ctx))
        try:
            return await self._call(*args)
        finally:
            watcher.cancel()

    async def _serve(
        self, ctx: RequestContext, request: Request, writer: ResponseWriter
    ) -> BaseException | None:
        if request.method != "POST":
            return NotPostError(request.method)

        content_type = request.headers.get("content-type", "")
        if media_type(content_type) != JSON_MEDIA_TYPE:
            return NotJSONError(content_type)

        args: list[Any] = []
        # the client can only be watched once its body has been drained
        receive: IReceive | None = None
        if self._sig.has_context:
            args.append(ctx)
        if self._decoder is not None:
            body = await request.body()
            try:
                args.append(self._decoder(body))
            except (MsgspecDecodeError, ValueError) as exc:
                return DecodeError(exc)
            receive = request.receive

        try:
            result = await self._invoke(ctx, args, receive)
            value, err = self._split_result(result)
        except Exception as exc:
            return exc

        if err is not None:
            return err

        if self._encoder is None:
            writer.write_header(204)
            return None

        try:
            content = self._encoder(value)
        except (TypeError, ValueError, MsgspecError) as exc:
            return EncodeError(exc)

        writer.headers["content-type"] = JSON_CONTENT_TYPE
        writer.write(content)
        return None

    async def _report(self, ctx: Context, exc: BaseException) -> None:
        if self._on_error is None:
            return
        res = self._on_error(ctx, exc)
        if isawaitable(res):
            await res

    async def __call__(self, scope: IScope, receive: IReceive, send: ISend) -> None:
        if scope["type"] != "http":
            raise NotSupportedError(
                f"{self!r} only serves http requests, got {scope['type']!r}"
            )

        request = Request(scope, receive, send)
        writer = ResponseWriter()
        ctx = RequestContext(parent_context(scope), request, writer)

        try:
            failure = await self._serve(ctx, request, writer)
        except Exception as exc:
            failure = exc

        if failure is not None:
            status = resolve_error(failure, writer, self._config.error_format)
            logger.debug(
                "%s %s failed with %d: %r",
                request.method,
                scope.get("path", ""),
                status,
                failure,
            )

        response = writer.to_response()
        await response(scope, receive, send)

        if failure is not None:
            await self._report(ctx, failure)


def handler(
    func: Callable[..., Any],
    on_error: ErrorSink | None = None,
    *,
    config: HandlerConfig | None = None,
    workers: ThreadPoolExecutor | None = None,
) -> JSONHandler:
    "Wrap `func` into an ASGI app speaking json over http, see `JSONHandler`"
    return JSONHandler(func, on_error, config=config, workers=workers)
