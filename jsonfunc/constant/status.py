from http import HTTPStatus
from typing import Literal, TypeAliasType

type OK = Literal[200]
"""#### The request has succeeded."""
type NO_CONTENT = Literal[204]
"""#### The server successfully processed the request and is not returning any content."""
type BAD_REQUEST = Literal[400]
"""#### The server cannot process the request due to client error (e.g., malformed request syntax)."""
type UNAUTHORIZED = Literal[401]
"""#### Authentication is required and has failed or has not yet been provided."""
type FORBIDDEN = Literal[403]
"""#### The client does not have access rights to the content."""
type NOT_FOUND = Literal[404]
"""#### The server cannot find the requested resource."""
type METHOD_NOT_ALLOWED = Literal[405]
"""#### The request method is known by the server but is not supported for the target resource."""
type CONFLICT = Literal[409]
"""#### Indicates a conflict with the current state of the resource."""
type GONE = Literal[410]
"""#### Indicates that the resource is no longer available and will not be available again."""
type UNSUPPORTED_MEDIA_TYPE = Literal[415]
"""#### The media format of the requested data is not supported by the server."""
type UNPROCESSABLE_ENTITY = Literal[422]
"""#### The request was well-formed but was unable to be followed due to semantic errors."""
type TOO_MANY_REQUESTS = Literal[429]
"""#### The user has sent too many requests in a given amount of time."""
type INTERNAL_SERVER_ERROR = Literal[500]
"""#### The server has encountered a situation it doesn't know how to handle."""
type NOT_IMPLEMENTED = Literal[501]
"""#### The request method is not supported by the server and cannot be handled."""
type BAD_GATEWAY = Literal[502]
"""#### The server received an invalid response from the upstream server."""
type SERVICE_UNAVAILABLE = Literal[503]
"""#### The server is not ready to handle the request."""
type GATEWAY_TIMEOUT = Literal[504]
"""#### The server is acting as a gateway and cannot get a response in time."""

type Status = Literal[
    OK,
    NO_CONTENT,
    BAD_REQUEST,
    UNAUTHORIZED,
    FORBIDDEN,
    NOT_FOUND,
    METHOD_NOT_ALLOWED,
    CONFLICT,
    GONE,
    UNSUPPORTED_MEDIA_TYPE,
    UNPROCESSABLE_ENTITY,
    TOO_MANY_REQUESTS,
    INTERNAL_SERVER_ERROR,
    NOT_IMPLEMENTED,
    BAD_GATEWAY,
    SERVICE_UNAVAILABLE,
    GATEWAY_TIMEOUT,
]
""" ### HTTP status codes with a named alias, any other valid int is accepted as well"""


STATUS_CODE: dict[TypeAliasType, int] = {
    OK: 200,
    NO_CONTENT: 204,
    BAD_REQUEST: 400,
    UNAUTHORIZED: 401,
    FORBIDDEN: 403,
    NOT_FOUND: 404,
    METHOD_NOT_ALLOWED: 405,
    CONFLICT: 409,
    GONE: 410,
    UNSUPPORTED_MEDIA_TYPE: 415,
    UNPROCESSABLE_ENTITY: 422,
    TOO_MANY_REQUESTS: 429,
    INTERNAL_SERVER_ERROR: 500,
    NOT_IMPLEMENTED: 501,
    BAD_GATEWAY: 502,
    SERVICE_UNAVAILABLE: 503,
    GATEWAY_TIMEOUT: 504,
}


def phrase(status: int) -> str:
    "Reason phrase of a status code, empty when the code is unknown"
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return ""


def code(status: "int | TypeAliasType") -> int:
    if isinstance(status, int):
        return status
    return STATUS_CODE[status]
