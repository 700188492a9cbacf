import re

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def to_kebab_case(name: str) -> str:
    """
    NotJSONError -> not-json-error
    HTTPTimeout -> http-timeout
    """
    return _CAMEL_BOUNDARY.sub("-", name).replace("_", "-").lower()
