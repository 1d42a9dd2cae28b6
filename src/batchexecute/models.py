"""RPC descriptors and decoded responses."""

import json
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from . import constants


@dataclass(frozen=True)
class RPC:
    """A single remote procedure call to place in a batch.

    Only the first RPC of a batch contributes ``rpcids`` and its
    ``url_params`` to the request URL.
    """

    id: str
    args: Sequence[Any] = ()
    url_params: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Response:
    """One decoded wrb.fr frame.

    ``data`` is the raw JSON payload. When the server sent no payload
    (error frames), ``data`` holds the whole frame so callers can still
    inspect it, and ``error``/``error_code`` describe the status found there.
    """

    id: str
    index: int
    data: bytes
    error: str | None = None
    error_code: int | None = None

    def json(self) -> Any:
        """Deserialize the payload."""
        return json.loads(self.data)

    @property
    def is_auth_expired(self) -> bool:
        # Signature: ["wrb.fr", "RPC_ID", null, null, null, [16], "generic"]
        return self.error_code == constants.RPC_STATUS_UNAUTHENTICATED
