"""batchexecute API client.

Builds the ``f.req`` envelope for one or more RPCs, posts it and decodes the
reply. What each RPC's arguments and results mean is up to the caller.
"""

import json
import logging
import os
import threading
import urllib.parse
from dataclasses import dataclass, field, replace
from typing import Any, Mapping, Sequence

import httpx

from . import constants
from .auth import format_cookie_header
from .decoder import decode
from .errors import HTTPStatusError, TransportError, UnauthorizedError
from .models import RPC, Response
from .reqid import RequestIDSequencer

# Debug dumps go here when a client is created with debug=True
logger = logging.getLogger("batchexecute.api")


def _format_debug_json(data: Any, max_length: int = 2000) -> str:
    """Format data as pretty-printed JSON for debug logging."""
    try:
        formatted = json.dumps(data, indent=2, ensure_ascii=False)
    except (TypeError, ValueError):
        formatted = str(data)
    if len(formatted) > max_length:
        return formatted[:max_length] + "\n  ... (truncated)"
    return formatted


def _decode_request_body(body: str) -> dict[str, Any]:
    """Decode URL-encoded request body and parse JSON structures."""
    result: dict[str, Any] = {}
    parsed = urllib.parse.parse_qs(body.rstrip("&"))

    if "f.req" in parsed:
        f_req_raw = parsed["f.req"][0]
        try:
            f_req = json.loads(f_req_raw)
        except json.JSONDecodeError:
            result["f.req"] = f_req_raw
        else:
            result["f.req"] = f_req
            # [[[rpc_id, params_json, null, "generic"], ...]]
            calls = []
            if isinstance(f_req, list) and f_req and isinstance(f_req[0], list):
                for rpc_call in f_req[0]:
                    if not isinstance(rpc_call, list) or len(rpc_call) < 2:
                        continue
                    params = rpc_call[1]
                    if isinstance(params, str):
                        try:
                            params = json.loads(params)
                        except json.JSONDecodeError:
                            pass
                    calls.append({"rpc_id": rpc_call[0], "params": params})
            result["rpcs"] = calls

    # Never log the actual token
    if "at" in parsed:
        result["at"] = "(auth_token)"

    return result


def _parse_url_params(url: str) -> dict[str, Any]:
    """Parse URL query parameters for debug display."""
    params = urllib.parse.parse_qs(urllib.parse.urlparse(url).query)
    # Flatten single-value lists
    return {k: v[0] if len(v) == 1 else v for k, v in params.items()}


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class TransportConfig:
    """Connection settings for one batchexecute endpoint.

    ``cookies`` may be given as a header string or as a name/value mapping.
    """

    host: str
    app: str
    auth_token: str = ""
    cookies: str = ""
    headers: Mapping[str, str] = field(default_factory=dict)
    url_params: Mapping[str, str] = field(default_factory=dict)
    use_http: bool = False
    debug: bool = False

    def __post_init__(self):
        if not isinstance(self.cookies, str):
            object.__setattr__(self, "cookies", format_cookie_header(self.cookies))

    @property
    def base_url(self) -> str:
        scheme = "http" if self.use_http else "https"
        return f"{scheme}://{self.host}{constants.BATCHEXECUTE_PATH.format(app=self.app)}"

    @classmethod
    def from_env(cls, **overrides: Any) -> "TransportConfig":
        """Build a config from BATCHEXECUTE_* environment variables.

        Keyword arguments take precedence over the environment.

        Raises:
            ValueError: If host or app is not configured.
        """
        values: dict[str, Any] = {
            "host": os.environ.get(constants.ENV_HOST, ""),
            "app": os.environ.get(constants.ENV_APP, ""),
            "auth_token": os.environ.get(constants.ENV_AUTH_TOKEN, ""),
            "cookies": os.environ.get(constants.ENV_COOKIES, ""),
            "use_http": _env_flag(constants.ENV_USE_HTTP),
            "debug": _env_flag(constants.ENV_DEBUG),
        }
        values.update(overrides)
        if not values["host"] or not values["app"]:
            raise ValueError(
                f"batchexecute host and app are required (set {constants.ENV_HOST} and {constants.ENV_APP})"
            )
        return cls(**values)


def encode_rpc(rpc: RPC) -> list[Any]:
    """Encode one RPC as its wire tuple."""
    # Compact separators match the browser's format
    args_json = json.dumps(list(rpc.args), separators=(",", ":"))
    return [rpc.id, args_json, None, constants.GENERIC_INDEX]


def build_request_body(rpcs: Sequence[RPC], auth_token: str) -> str:
    """Build the form-encoded batchexecute request body."""
    f_req = [[encode_rpc(rpc) for rpc in rpcs]]
    f_req_json = json.dumps(f_req, separators=(",", ":"))
    # safe='' encodes all characters including /
    return f"f.req={urllib.parse.quote(f_req_json, safe='')}&at={urllib.parse.quote(auth_token, safe='')}"


class BatchExecuteClient:
    """Client for the batchexecute RPC transport.

    No retries are made. Auth expiry surfaces as UnauthorizedError (HTTP 401)
    or as a Response whose ``is_auth_expired`` is set, and re-authenticating
    is left to the caller.
    """

    def __init__(
        self,
        config: TransportConfig,
        *,
        http_client: httpx.Client | None = None,
        transport: httpx.BaseTransport | None = None,
        timeout: float | None = None,
        headers: Mapping[str, str] | None = None,
        url_params: Mapping[str, str] | None = None,
        debug: bool | None = None,
        reqid: RequestIDSequencer | None = None,
        debug_logger: logging.Logger | None = None,
    ):
        """
        Initialize the client.

        Args:
            config: Endpoint, token and cookies
            http_client: Client to send requests with (not closed by close())
            transport: Transport for the client created internally, e.g. httpx.MockTransport.
                Cannot be combined with http_client
            timeout: Request timeout in seconds (default 30s for the internal client)
            headers: Extra headers, merged over config.headers
            url_params: Extra URL parameters, merged over config.url_params
            debug: Overrides config.debug
            reqid: Request ID sequencer, a new one per client by default
            debug_logger: Where debug dumps are written

        Raises:
            ValueError: If both http_client and transport are given
        """
        if http_client is not None and transport is not None:
            raise ValueError("pass either http_client or transport, not both")
        if headers:
            config = replace(config, headers={**config.headers, **headers})
        if url_params:
            config = replace(config, url_params={**config.url_params, **url_params})
        if debug is not None:
            config = replace(config, debug=debug)

        self._config = config
        self._client = http_client
        self._owns_client = http_client is None
        self._transport = transport
        self._client_lock = threading.Lock()
        self.timeout = timeout
        self.reqid = reqid if reqid is not None else RequestIDSequencer()
        self._logger = debug_logger if debug_logger is not None else logger

    @property
    def config(self) -> TransportConfig:
        return self._config

    def _get_client(self) -> httpx.Client:
        """Get or create HTTP client."""
        client = self._client
        if client is None:
            with self._client_lock:
                if self._client is None:
                    timeout = self.timeout if self.timeout is not None else constants.DEFAULT_TIMEOUT
                    self._client = httpx.Client(timeout=timeout, transport=self._transport)
                client = self._client
        return client

    def _build_url(self, rpcs: Sequence[RPC]) -> str:
        """Build the batchexecute URL with query params."""
        # Only the first RPC names the batch
        first = rpcs[0]
        params = {"rpcids": first.id}
        params.update(self._config.url_params)
        params.update(first.url_params)
        params["rt"] = constants.RESPONSE_TYPE_CHUNKED
        params["_reqid"] = self.reqid.next()

        query = urllib.parse.urlencode(params)
        return f"{self._config.base_url}?{query}"

    def _build_headers(self) -> httpx.Headers:
        headers = httpx.Headers({"content-type": constants.CONTENT_TYPE_FORM})
        headers.update(self._config.headers)
        headers["cookie"] = self._config.cookies
        return headers

    def _log_request(self, url: str, body: str, headers: httpx.Headers) -> None:
        log = self._logger
        log.debug("=" * 70)
        log.debug("BatchExecute Request: %s", url)
        log.debug("-" * 70)
        log.debug("URL Parameters:")
        for key, value in _parse_url_params(url).items():
            log.debug("  %s: %s", key, value)
        log.debug("-" * 70)
        # Never log the actual token
        log.debug("Request Body:\n%s", body.split("&at=", 1)[0] + "&at=(auth_token)")
        log.debug("Decoded Request Body:\n%s", _format_debug_json(_decode_request_body(body)))
        log.debug("Request Headers:")
        for key, value in headers.items():
            log.debug("  %s: %s", key, "(redacted)" if key.lower() == "cookie" else value)

    def _log_response(self, response: httpx.Response) -> None:
        log = self._logger
        log.debug("-" * 70)
        log.debug("Response Status: %s %s", response.status_code, response.reason_phrase)
        log.debug("Response Headers:")
        for key, value in response.headers.items():
            log.debug("  %s: %s", key, value)
        text = response.text
        log.debug("Response Body:\n%s", text[:2000] + "... (truncated)" if len(text) > 2000 else text)
        log.debug("=" * 70)

    def execute(self, rpcs: Sequence[RPC], timeout: float | None = None) -> Response:
        """Execute a batch of RPCs and return the first decoded response.

        Args:
            rpcs: One or more RPCs, sent in order
            timeout: Per-call timeout in seconds, overrides the client timeout

        Raises:
            ValueError: If rpcs is empty
            TransportError: If the request could not be sent
            UnauthorizedError: On HTTP 401
            HTTPStatusError: On any other non-2xx status
            DecodeError: If the body holds no decodable wrb.fr frame
        """
        rpcs = list(rpcs)
        if not rpcs:
            raise ValueError("execute requires at least one RPC")

        debug = self._config.debug
        url = self._build_url(rpcs)
        body = build_request_body(rpcs, self._config.auth_token)
        headers = self._build_headers()
        if debug:
            self._log_request(url, body, headers)

        kwargs: dict[str, Any] = {"content": body, "headers": headers}
        if timeout is None:
            timeout = self.timeout
        if timeout is not None:
            kwargs["timeout"] = timeout

        try:
            response = self._get_client().post(url, **kwargs)
        except httpx.RequestError as e:
            raise TransportError(f"execute request: {e}") from e

        if debug:
            self._log_response(response)

        if not response.is_success:
            message = f"request failed: {response.status_code} {response.reason_phrase}"
            if response.status_code == 401:
                raise UnauthorizedError(response.status_code, message, response)
            raise HTTPStatusError(response.status_code, message, response)

        responses = decode(response.text, self._logger if debug else None)
        if debug:
            for r in responses:
                self._logger.debug("Response %s[%d]: %s", r.id, r.index, r.data[:2000].decode("utf-8", "replace"))
        return responses[0]

    def do(self, rpc: RPC, timeout: float | None = None) -> Response:
        """Execute a single RPC."""
        return self.execute([rpc], timeout=timeout)

    def close(self) -> None:
        """Close the HTTP client if this client created it."""
        if not self._owns_client:
            return
        with self._client_lock:
            if self._client is not None:
                self._client.close()
                self._client = None

    def __enter__(self) -> "BatchExecuteClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
