from typing import Any, Generic, Protocol, TypeVar

from msgspec import Struct
from typing_extensions import dataclass_transform

T = TypeVar("T")


DI = TypeVar("DI", contravariant=True)
DT = TypeVar("DT", covariant=True)


class IDecoder(Protocol, Generic[DI, DT]):
    def __call__(self, content: DI, /) -> DT: ...


class IEncoder(Protocol):
    def __call__(self, content: Any, /) -> bytes: ...


IBodyDecoder = IDecoder[bytes, T]


class Base(Struct):
    "Base model for mutable internal structs"


@dataclass_transform(frozen_default=True)
class Record(Base, frozen=True, gc=False, cache_hash=True): ...  # type: ignore
