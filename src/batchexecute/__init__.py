"""Client for Google's batchexecute RPC transport."""

__version__ = "0.1.0"

from .api_client import BatchExecuteClient, TransportConfig, build_request_body, encode_rpc
from .decoder import decode, decode_chunked_response, decode_response
from .errors import (
    BatchExecuteError,
    DecodeError,
    HTTPStatusError,
    NoResponsesError,
    TransportError,
    UnauthorizedError,
)
from .models import RPC, Response
from .reqid import RequestIDSequencer

__all__ = [
    "__version__",
    "BatchExecuteClient",
    "TransportConfig",
    "RPC",
    "Response",
    "RequestIDSequencer",
    "build_request_body",
    "encode_rpc",
    "decode",
    "decode_response",
    "decode_chunked_response",
    "BatchExecuteError",
    "TransportError",
    "HTTPStatusError",
    "UnauthorizedError",
    "DecodeError",
    "NoResponsesError",
]
