from typing import Any


class JsonFuncError(Exception):
    __slots__ = ()
    ...


class InvalidSignatureError(JsonFuncError):
    "The wrapped function does not have a shape a handler can serve"

    def __init__(self, func: Any, reason: str):
        self.func = func
        self.reason = reason
        name = getattr(func, "__qualname__", repr(func))
        super().__init__(f"Invalid function {name} passed to handler: {reason}")


class NotSupportedError(JsonFuncError):
    "A generic error for behaviors we currently do not support"

    def __init__(self, msg: str):
        super().__init__(msg)


class ConfigError(JsonFuncError): ...


class InvalidStatusError(JsonFuncError):
    def __init__(self, code: Any) -> None:
        super().__init__(f"Invalid status code {code!r}")
