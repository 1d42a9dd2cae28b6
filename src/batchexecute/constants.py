"""
Wire constants and code mappings for the batchexecute transport.

Everything the encoder and decoder need to agree on lives here, so the
client and decoder modules only deal with control flow.
"""


class CodeMapper:
    """
    Maps status codes to display names.

    Falls back to an 'unknown' label for codes the server may add later.
    """

    def __init__(self, mapping: dict[str, int], unknown_label: str = "unknown"):
        self._code_to_name: dict[int, str] = {v: k for k, v in mapping.items()}
        self._unknown_label = unknown_label

    def get_name(self, code: int | None) -> str:
        """Get string name for an integer code, or the unknown label."""
        if code is None:
            return self._unknown_label
        return self._code_to_name.get(code, self._unknown_label)


# =============================================================================
# Endpoint
# =============================================================================
BATCHEXECUTE_PATH = "/_/{app}/data/batchexecute"

DEFAULT_TIMEOUT = 30.0  # seconds

CONTENT_TYPE_FORM = "application/x-www-form-urlencoded;charset=UTF-8"

# Request chunked-transfer mode
RESPONSE_TYPE_CHUNKED = "c"

# =============================================================================
# Wire format
# =============================================================================
# Anti-XSSI prefix prepended to every response body
ANTI_XSSI_PREFIX = ")]}'"

# First element of a well-formed RPC result frame
RPC_FRAME_MARKER = "wrb.fr"

# Index marker used for single (non-batched) results
GENERIC_INDEX = "generic"

# Qualifying frames carry at least this many elements
MIN_FRAME_LENGTH = 7

# Position of each field inside a result frame
FRAME_ID = 1
FRAME_PAYLOAD = 2
FRAME_STATUS = 5
FRAME_INDEX = 6

# =============================================================================
# Request IDs
# =============================================================================
REQID_BASE_MIN = 1000
REQID_BASE_MAX = 9999
REQID_STRIDE = 100000

# =============================================================================
# RPC status codes (carried in error frames at FRAME_STATUS)
# =============================================================================
RPC_STATUS_INVALID_ARGUMENT = 3
RPC_STATUS_NOT_FOUND = 5
RPC_STATUS_PERMISSION_DENIED = 7
RPC_STATUS_RESOURCE_EXHAUSTED = 8
RPC_STATUS_INTERNAL = 13
RPC_STATUS_UNAVAILABLE = 14
RPC_STATUS_UNAUTHENTICATED = 16  # Auth expired, callers should re-authenticate

RPC_STATUS_CODES = CodeMapper({
    "invalid_argument": RPC_STATUS_INVALID_ARGUMENT,
    "not_found": RPC_STATUS_NOT_FOUND,
    "permission_denied": RPC_STATUS_PERMISSION_DENIED,
    "resource_exhausted": RPC_STATUS_RESOURCE_EXHAUSTED,
    "internal": RPC_STATUS_INTERNAL,
    "unavailable": RPC_STATUS_UNAVAILABLE,
    "unauthenticated": RPC_STATUS_UNAUTHENTICATED,
})

# =============================================================================
# Environment configuration
# =============================================================================
ENV_HOST = "BATCHEXECUTE_HOST"
ENV_APP = "BATCHEXECUTE_APP"
ENV_AUTH_TOKEN = "BATCHEXECUTE_AUTH_TOKEN"
ENV_COOKIES = "BATCHEXECUTE_COOKIES"
ENV_DEBUG = "BATCHEXECUTE_DEBUG"
ENV_USE_HTTP = "BATCHEXECUTE_USE_HTTP"
