from typing import Any, TypeVar

from jsonfunc.interface.asgi import ASGIApp as ASGIApp
from jsonfunc.interface.asgi import IReceive as IReceive
from jsonfunc.interface.asgi import IScope as IScope
from jsonfunc.interface.asgi import ISend as ISend
from jsonfunc.interface.struct import Base as Base
from jsonfunc.interface.struct import IBodyDecoder as IBodyDecoder
from jsonfunc.interface.struct import IDecoder as IDecoder
from jsonfunc.interface.struct import IEncoder as IEncoder
from jsonfunc.interface.struct import Record as Record

T = TypeVar("T")

StrDict = dict[str, Any]
