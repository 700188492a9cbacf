from decimal import Decimal
from functools import lru_cache

from msgspec import UNSET, UnsetType
from msgspec.json import Decoder as JsonDecoder
from msgspec.json import Encoder as JsonEncoder

from jsonfunc.interface import IBodyDecoder, IEncoder, T
from jsonfunc.utils.typing import is_pydantic_model


@lru_cache(256)
def decoder_factory(
    t: type[T], strict: bool = True, precise: bool = True
) -> IBodyDecoder[T]:
    """
    Build a body decoder for `t`.

    With `precise`, untyped json floats become `decimal.Decimal` built from the
    literal text instead of `float`. Untyped integer literals, including ones
    beyond 64 bits, keep every digit.
    """
    if is_pydantic_model(t):
        from pydantic import TypeAdapter

        return TypeAdapter(t).validate_json

    float_hook = Decimal if precise else None
    return JsonDecoder(t, strict=strict, float_hook=float_hook).decode


@lru_cache(256)
def encoder_factory(t: type[T] | UnsetType = UNSET, precise: bool = True) -> IEncoder:
    if is_pydantic_model(t):
        from pydantic import TypeAdapter

        return TypeAdapter(t).dump_json

    decimal_format = "number" if precise else "string"
    return JsonEncoder(decimal_format=decimal_format).encode
