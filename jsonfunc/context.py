"""
Per-request context handed to wrapped functions and to the error sink.

`Context` is the cancellation signal; `RequestContext` is the carrier that
additionally exposes the pending request and its response writer.
"""

from threading import Event, Lock
from typing import TYPE_CHECKING
from weakref import WeakSet

from jsonfunc.vendors import Request

if TYPE_CHECKING:
    from jsonfunc.writer import ResponseWriter

SCOPE_CONTEXT_KEY = "jsonfunc.context"
"key under `scope['state']` where a host may place the caller's Context"


class Context:
    """
    A cancellation signal.

    A context created from a parent is cancelled together with its parent,
    cancelling a child never affects the parent.

    ```python
    def transfer(ctx: Context, order: Order) -> Receipt:
        for step in order.steps:
            if ctx.cancelled:
                raise CodeError(503)
            ...
    ```
    """

    __slots__ = ("_parent", "_event", "_lock", "_children", "__weakref__")

    def __init__(self, parent: "Context | None" = None):
        self._parent = parent
        self._event = Event()
        self._lock = Lock()
        self._children: WeakSet[Context] = WeakSet()
        if parent is not None:
            parent._attach(self)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(cancelled={self.cancelled})"

    def _attach(self, child: "Context") -> None:
        with self._lock:
            cancelled = self._event.is_set()
            if not cancelled:
                self._children.add(child)
        if cancelled:
            child.cancel()

    @property
    def parent(self) -> "Context | None":
        return self._parent

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            children = list(self._children)
            self._children.clear()
        for child in children:
            child.cancel()

    def wait(self, timeout: float | None = None) -> bool:
        "Block until cancelled or `timeout` elapses, return whether cancelled"
        return self._event.wait(timeout)


class RequestContext(Context):
    """
    Carrier binding the pending request and its response writer to a Context.

    Both handles may be None: a carrier with empty handles is still a carrier,
    see `carrier_of`.
    """

    __slots__ = ("_request", "_response")

    def __init__(
        self,
        parent: Context | None = None,
        request: Request | None = None,
        response: "ResponseWriter | None" = None,
    ):
        super().__init__(parent)
        self._request = request
        self._response = response

    @property
    def request(self) -> Request | None:
        return self._request

    @property
    def response(self) -> "ResponseWriter | None":
        return self._response


def carrier_of(ctx: Context | None) -> RequestContext | None:
    "The carrier behind `ctx`, None when `ctx` was not created by a handler"
    if isinstance(ctx, RequestContext):
        return ctx
    return None


def get_request(ctx: Context | None) -> Request | None:
    if carrier := carrier_of(ctx):
        return carrier.request
    return None


def get_response(ctx: Context | None) -> "ResponseWriter | None":
    if carrier := carrier_of(ctx):
        return carrier.response
    return None
