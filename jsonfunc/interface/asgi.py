from typing import Awaitable, Callable

from starlette.types import Receive as IReceive
from starlette.types import Scope as IScope
from starlette.types import Send as ISend

ASGIApp = Callable[
    [
        IScope,
        IReceive,
        ISend,
    ],
    Awaitable[None],
]
