from types import GenericAlias, UnionType
from typing import Annotated, Any, TypeGuard, TypeVar, Union, get_args
from typing import get_origin as ty_get_origin

from typing_extensions import TypeAliasType

T = TypeVar("T")


def is_union_type(
    t: type | UnionType | GenericAlias | TypeAliasType,
):
    return ty_get_origin(t) in (Union, UnionType)


def lenient_issubclass(
    cls: Any, class_or_tuple: type[T] | tuple[type[Any], ...]
) -> TypeGuard[type[T]]:
    "issubclass that returns False instead of raising for non-class values"
    try:
        return isinstance(cls, type) and issubclass(cls, class_or_tuple)
    except TypeError:
        return False


def dealias(annt: Any) -> Any:
    """
    strip `type X = ...` aliases and `Annotated` metadata

    type Amount = Annotated[Decimal, "money"]
    assert dealias(Amount) is Decimal
    """
    while True:
        if isinstance(annt, TypeAliasType):
            annt = annt.__value__
        elif ty_get_origin(annt) is Annotated:
            annt = get_args(annt)[0]
        else:
            return annt


def union_members(annt: Any) -> tuple[Any, ...]:
    if is_union_type(annt):
        return get_args(annt)
    return (annt,)


def is_pydantic_model(t: Any) -> bool:
    try:
        from pydantic import BaseModel
    except ImportError:
        return False

    if lenient_issubclass(t, BaseModel):
        return True
    return any(is_pydantic_model(arg) for arg in get_args(t))
