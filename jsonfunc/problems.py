"""
Per-request errors and the resolution of an error into a response.

Resolution order for an exception:

1. it implements `Responder`: it renders the whole response itself.
2. it, or an exception in its cause chain, is a `CodeError` or converts to
   one through `CodeConvertible`: that code is used, the message of the
   outermost exception is the body.
3. otherwise: 500 with the message of the exception.
"""

from typing import Iterator, Literal, Protocol, TypeAliasType, runtime_checkable

from msgspec import field

from jsonfunc.constant import status as http_status
from jsonfunc.errors import InvalidStatusError
from jsonfunc.interface import Record
from jsonfunc.utils.json import encoder_factory
from jsonfunc.utils.string import to_kebab_case
from jsonfunc.writer import ResponseWriter

ErrorFormat = Literal["text", "problem"]

PROBLEM_CONTENT_TYPE = "application/problem+json"


@runtime_checkable
class Responder(Protocol):
    "An error that knows how to render its own response, status and headers included"

    def respond(self, writer: ResponseWriter) -> None: ...


@runtime_checkable
class CodeConvertible(Protocol):
    "An error that maps onto a status code without rendering the response itself"

    def as_code_error(self) -> "CodeError | None": ...


class CodeError(Exception):
    """
    An error carrying the status code the response should have.

    Return or raise it from a wrapped function:

    ```python
    def get_user(ctx: Context, q: UserQuery) -> tuple[User, CodeError | None]:
        user = users.get(q.user_id)
        if user is None:
            return None, CodeError(status.NOT_FOUND)
        return user, None
    ```
    """

    def __init__(
        self,
        code: int | TypeAliasType,
        cause: BaseException | None = None,
    ):
        status_code = http_status.code(code)
        if not 100 <= status_code <= 599:
            raise InvalidStatusError(code)
        self.code = status_code
        self.cause = cause
        super().__init__(status_code, cause)
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        msg = f"HTTP {self.code}"
        if text := http_status.phrase(self.code):
            msg += f": {text}"
        if self.cause is not None:
            msg += f": {self.cause}"
        return msg


class RequestError(Exception):
    "Errors the handler raises for requests it refuses, all map to 400"

    def as_code_error(self) -> CodeError:
        return CodeError(http_status.BAD_REQUEST)


class NotPostError(RequestError):
    def __init__(self, method: str):
        self.method = method
        super().__init__(f"HTTP method is {method} but must be POST")


class NotJSONError(RequestError):
    def __init__(self, content_type: str):
        self.content_type = content_type
        super().__init__(
            f"request Content-Type is {content_type}, want application/json"
        )


class DecodeError(RequestError):
    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(f"while decoding JSON request body: {cause}")
        self.__cause__ = cause


class EncodeError(RequestError):
    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(f"while encoding JSON response: {cause}")
        self.__cause__ = cause


class ProblemDetail(Record):
    "RFC 9457 problem body used when errors are rendered as json"

    type_: str = field(name="type")
    title: str
    status: int
    detail: str


_encode_problem = encoder_factory(ProblemDetail)


def error_message(exc: BaseException) -> str:
    return str(exc) or exc.__class__.__name__


def iter_causes(exc: BaseException) -> Iterator[BaseException]:
    """
    Yield `exc` then each exception it wraps.

    An explicit `cause` attribute wins over `__cause__`. The implicit
    `__context__` of an exception raised while handling another is not a
    cause. Cycles end the walk.
    """
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current

        cause = getattr(current, "cause", None)
        if not isinstance(cause, BaseException):
            cause = current.__cause__
        current = cause


def find_code_error(exc: BaseException) -> CodeError | None:
    for err in iter_causes(exc):
        if isinstance(err, CodeError):
            return err
        if isinstance(err, CodeConvertible):
            if (code_err := err.as_code_error()) is not None:
                return code_err
    return None


def render_problem(writer: ResponseWriter, exc: BaseException, status: int) -> None:
    detail = ProblemDetail(
        type_=to_kebab_case(exc.__class__.__name__),
        title=http_status.phrase(status) or "Error",
        status=status,
        detail=error_message(exc),
    )
    writer.replace(_encode_problem(detail), status, PROBLEM_CONTENT_TYPE)


def resolve_error(
    exc: BaseException,
    writer: ResponseWriter,
    error_format: ErrorFormat = "text",
) -> int:
    "Render `exc` into `writer`, return the resulting status code"
    if isinstance(exc, Responder):
        writer.reset()
        exc.respond(writer)
        return writer.status_code

    code_err = find_code_error(exc)
    status = code_err.code if code_err is not None else 500

    if error_format == "problem":
        render_problem(writer, exc, status)
    else:
        writer.error(error_message(exc), status)
    return status
