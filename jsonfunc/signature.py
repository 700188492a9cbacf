from inspect import Parameter, Signature, signature
from types import NoneType
from typing import Any, Callable, get_args, get_origin

from jsonfunc.context import Context
from jsonfunc.errors import InvalidSignatureError
from jsonfunc.interface import Record
from jsonfunc.utils.threading import is_async_callable
from jsonfunc.utils.typing import dealias, lenient_issubclass, union_members

MAX_PARAMS = 2
MAX_RETURNS = 2


class FunctionSignature(Record):
    """
    The shape of a wrapped function, derived once by `inspect_function`.

    `param_type` and `return_type` are None when the function declares no
    data parameter / no data return.
    """

    has_context: bool
    param_type: Any
    has_error: bool
    return_type: Any
    is_async: bool = False

    @property
    def has_param(self) -> bool:
        return self.param_type is not None

    @property
    def has_return(self) -> bool:
        return self.return_type is not None


def is_context_type(annt: Any) -> bool:
    return lenient_issubclass(dealias(annt), Context)


def is_error_type(annt: Any) -> bool:
    """
    ValueError -> True
    ValueError | KeyError | None -> True
    int | ValueError -> False
    None -> False
    """
    members = [
        m for m in union_members(dealias(annt)) if m is not None and m is not NoneType
    ]
    return bool(members) and all(
        lenient_issubclass(dealias(m), Exception) for m in members
    )


def _is_none(annt: Any) -> bool:
    return annt is None or annt is NoneType


def _data_type(annt: Any) -> Any:
    if annt is Parameter.empty:
        return Any
    return dealias(annt)


def _classify_params(
    func: Callable[..., Any], params: list[Parameter]
) -> tuple[bool, Any]:
    for param in params:
        if param.kind in (Parameter.VAR_POSITIONAL, Parameter.VAR_KEYWORD):
            raise InvalidSignatureError(func, f"variadic parameter {param.name!r}")
        if param.kind is Parameter.KEYWORD_ONLY:
            raise InvalidSignatureError(func, f"keyword-only parameter {param.name!r}")

    match params:
        case []:
            return False, None
        case [only]:
            if is_context_type(only.annotation):
                return True, None
            return False, _data_type(only.annotation)
        case [first, second]:
            if not is_context_type(first.annotation):
                raise InvalidSignatureError(
                    func,
                    f"two parameters but the first one, {first.name!r}, is not a Context",
                )
            return True, _data_type(second.annotation)
        case _:
            raise InvalidSignatureError(
                func,
                f"{len(params)} parameters, at most {MAX_PARAMS} are allowed",
            )


def _classify_returns(func: Callable[..., Any], annt: Any) -> tuple[bool, Any]:
    if annt is Signature.empty:
        return False, Any

    annt = dealias(annt)
    if _is_none(annt):
        return False, None
    if is_error_type(annt):
        return True, None

    if get_origin(annt) is not tuple:
        return False, annt

    items = get_args(annt)
    if not any(is_error_type(item) for item in items if item is not Ellipsis):
        # a plain tuple is a json array, not multiple return values
        return False, annt

    if Ellipsis in items or len(items) > MAX_RETURNS:
        raise InvalidSignatureError(
            func, f"{len(items)} return values, at most {MAX_RETURNS} are allowed"
        )
    if len(items) == 1:
        return True, None

    data, err = items
    if is_error_type(data):
        raise InvalidSignatureError(
            func, "the first of two return values can't be an error type"
        )
    if not is_error_type(err):
        raise InvalidSignatureError(
            func, "two return values but the second one is not an error type"
        )
    return True, dealias(data)


def inspect_function(func: Callable[..., Any]) -> FunctionSignature:
    """
    Classify the parameters and return values of `func`.

    Accepted shapes, where `Ctx` is `Context` or a subclass of it,
    `T` any json-decodable type, `R` any json-encodable type and `E` an
    exception type (optionally `E | None`):

    ```
    f()             f(ctx: Ctx)        f(data: T)        f(ctx: Ctx, data: T)
    -> None         -> R               -> E              -> tuple[R, E]
    ```

    Raises `InvalidSignatureError` for anything else.
    """
    if not callable(func):
        raise InvalidSignatureError(func, "not callable")

    try:
        sig = signature(func, eval_str=True)
    except NameError as exc:
        raise InvalidSignatureError(func, f"unresolvable annotation, {exc}") from exc
    except (TypeError, ValueError) as exc:
        raise InvalidSignatureError(func, f"signature not inspectable, {exc}") from exc

    has_context, param_type = _classify_params(func, list(sig.parameters.values()))
    has_error, return_type = _classify_returns(func, sig.return_annotation)

    return FunctionSignature(
        has_context=has_context,
        param_type=param_type,
        has_error=has_error,
        return_type=return_type,
        is_async=is_async_callable(func),
    )
