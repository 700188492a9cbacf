from asyncio import get_running_loop
from concurrent.futures.thread import ThreadPoolExecutor
from contextvars import copy_context
from functools import partial, wraps
from inspect import iscoroutinefunction
from typing import Any, Awaitable, Callable, TypeVar, cast

T = TypeVar("T")


def is_async_callable(func: Any) -> bool:
    return iscoroutinefunction(func) or iscoroutinefunction(
        getattr(func, "__call__", None)
    )


def async_wrapper(
    func: Callable[..., T],
    *,
    threaded: bool = True,
    workers: ThreadPoolExecutor | None = None,
) -> Callable[..., Awaitable[T]]:
    """
    Give every callable the same awaitable calling convention.

    Coroutine functions are returned as is, sync functions are either called
    inline or run in `workers` (the loop's default executor when None).
    """
    if is_async_callable(func):
        return func

    @wraps(func)
    async def dummy(*args: Any) -> T:
        return func(*args)

    if not threaded:
        return dummy

    @wraps(func)
    async def inner(*args: Any) -> T:
        ctx = copy_context()
        func_call = partial(ctx.run, func, *args)
        # Resolve the running loop at call time to avoid cross-loop issues
        # when the wrapper is created under a different event loop.
        loop = get_running_loop()
        res = await loop.run_in_executor(workers, func_call)
        return cast(T, res)

    return inner
