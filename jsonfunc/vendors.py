from starlette.datastructures import MutableHeaders as MutableHeaders
from starlette.requests import Request as Request
from starlette.responses import Response as Response

try:
    from starlette.testclient import TestClient as TestClient
except (ImportError, RuntimeError):
    pass
