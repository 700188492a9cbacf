from .config import HandlerConfig as HandlerConfig
from .config import get_config as get_config
from .config import set_config as set_config
from .constant import status as status
from .context import Context as Context
from .context import RequestContext as RequestContext
from .context import carrier_of as carrier_of
from .context import get_request as get_request
from .context import get_response as get_response
from .errors import InvalidSignatureError as InvalidSignatureError
from .handler import JSONHandler as JSONHandler
from .handler import handler as handler
from .problems import CodeConvertible as CodeConvertible
from .problems import CodeError as CodeError
from .problems import DecodeError as DecodeError
from .problems import EncodeError as EncodeError
from .problems import NotJSONError as NotJSONError
from .problems import NotPostError as NotPostError
from .problems import Responder as Responder
from .signature import FunctionSignature as FunctionSignature
from .signature import inspect_function as inspect_function
from .vendors import Request as Request
from .writer import ResponseWriter as ResponseWriter

VERSION = "0.1.0"
__version__ = VERSION
