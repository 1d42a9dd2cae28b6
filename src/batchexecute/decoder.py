"""Decoding of batchexecute response bodies.

The server answers in one of two shapes and gives no hint which one.

Flat::

    )]}'
    123
    [["wrb.fr","rLM1Ne","[...]",null,null,null,"generic"],["di",53]]

Chunked: ``<byte-length>\\n<bytes>`` segments, ended by a zero length or by
the end of input. The segments concatenate to a flat body.

:func:`decode` tries each strategy in :data:`DECODE_STRATEGIES` in order and
returns the first success.
"""

import io
import json
import logging
import re
from typing import Any, Callable

from . import constants
from .errors import DecodeError, NoResponsesError
from .models import Response

# Chunk length markers mixed into flat bodies
_INTEGER_LINE = re.compile(r"[+-]?\d+", re.ASCII)
_CHUNK_LENGTH = re.compile(r"\d+", re.ASCII)


def strip_anti_xssi(raw: str) -> str:
    """Remove the anti-XSSI prefix if present."""
    if raw.startswith(constants.ANTI_XSSI_PREFIX):
        return raw[len(constants.ANTI_XSSI_PREFIX):]
    return raw


def _compact_json(data: Any) -> str:
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False)


def _parse_index(value: Any, logger: logging.Logger | None) -> int:
    if value == constants.GENERIC_INDEX:
        return 0
    if isinstance(value, str):
        if _INTEGER_LINE.fullmatch(value):
            try:
                return int(value)
            except ValueError:
                pass
        if logger:
            logger.debug("Invalid frame index %r, using 0", value)
    return 0


def _status_code(frame: list) -> int | None:
    status = frame[constants.FRAME_STATUS]
    if isinstance(status, list):
        for item in status:
            if isinstance(item, int) and not isinstance(item, bool):
                return item
    return None


def parse_frame(frame: Any, logger: logging.Logger | None = None) -> Response | None:
    """Turn one frame into a Response, or None for status/padding frames."""
    if not isinstance(frame, list) or len(frame) < constants.MIN_FRAME_LENGTH:
        return None
    if frame[0] != constants.RPC_FRAME_MARKER:
        return None

    rpc_id = frame[constants.FRAME_ID]
    if not isinstance(rpc_id, str):
        rpc_id = ""

    payload = frame[constants.FRAME_PAYLOAD]
    error = None
    error_code = None
    if isinstance(payload, str):
        data = payload.encode("utf-8")
    else:
        # No payload: keep the whole frame for error inspection
        data = _compact_json(frame).encode("utf-8")
        error_code = _status_code(frame)
        if error_code is not None:
            name = constants.RPC_STATUS_CODES.get_name(error_code)
            error = f"rpc error {error_code} ({name})"

    return Response(
        id=rpc_id,
        index=_parse_index(frame[constants.FRAME_INDEX], logger),
        data=data,
        error=error,
        error_code=error_code,
    )


def decode_response(raw: str, logger: logging.Logger | None = None) -> list[Response]:
    """Decode a flat body.

    Length marker lines and blank lines are dropped and the remaining lines
    are read as one JSON array of frames.

    Raises:
        DecodeError: If the body is not a JSON array.
        NoResponsesError: If no frame is a wrb.fr result.
    """
    raw = strip_anti_xssi(raw)
    # The server sometimes sends escaped newlines
    raw = raw.replace("\\n", "\n")
    if not raw:
        raise DecodeError("empty response after trimming prefix")

    kept = []
    for line in raw.split("\n"):
        trimmed = line.strip()
        if not trimmed or _INTEGER_LINE.fullmatch(trimmed):
            continue
        kept.append(line)
    filtered = "".join(kept).lstrip()

    try:
        # Only the first JSON value counts, trailing frames are ignored
        frames, _ = json.JSONDecoder().raw_decode(filtered)
    except (ValueError, RecursionError) as e:
        # ValueError also covers integers past the interpreter digit limit
        raise DecodeError(f"decode response: {e}") from e
    if not isinstance(frames, list):
        raise DecodeError(f"decode response: expected a JSON array, got {type(frames).__name__}")

    results = []
    for frame in frames:
        response = parse_frame(frame, logger)
        if response is not None:
            results.append(response)
        elif logger:
            logger.debug("Skipping frame: %s", _compact_json(frame)[:100])

    if not results:
        raise NoResponsesError("no valid responses found")
    return results


def _read_chunks(raw: str, logger: logging.Logger | None) -> str:
    reader = io.BytesIO(raw.encode("utf-8"))
    chunks: list[bytes] = []
    while True:
        line = reader.readline()
        if not line:
            break
        length_str = line.decode("utf-8", errors="replace").strip()
        if not length_str:
            continue
        total_length = None
        if _CHUNK_LENGTH.fullmatch(length_str):
            try:
                total_length = int(length_str)
            except ValueError:
                pass
        if total_length is None:
            if logger:
                logger.debug("Invalid length string: %r", length_str[:50])
            raise DecodeError(f"invalid chunk length: {length_str[:50]!r}")

        if total_length == 0:
            break
        chunk = reader.read(total_length)
        if len(chunk) < total_length:
            if logger:
                logger.debug("Failed to read chunk: got %d bytes, wanted %d", len(chunk), total_length)
            raise DecodeError(f"read chunk: got {len(chunk)} bytes, wanted {total_length}")
        chunks.append(chunk)

    try:
        return b"".join(chunks).decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeError(f"read chunk: {e}") from e


def decode_chunked_response(raw: str, logger: logging.Logger | None = None) -> list[Response]:
    """Decode a length-prefixed chunk stream.

    Raises:
        DecodeError: On an invalid length line, a short chunk, or when the
            reassembled payload does not decode as a flat body.
    """
    raw = strip_anti_xssi(raw).strip()
    if not raw:
        raise DecodeError("empty response after trimming prefix")

    full = _read_chunks(raw, logger)
    if logger:
        logger.debug("Full chunked JSON: %s", full[:2000])
    return decode_response(full, logger)


DecodeStrategy = Callable[..., list[Response]]

# Cheapest first: most bodies are flat
DECODE_STRATEGIES: tuple[tuple[str, DecodeStrategy], ...] = (
    ("flat", decode_response),
    ("chunked", decode_chunked_response),
)


def decode(
    raw: str,
    logger: logging.Logger | None = None,
    strategies: tuple[tuple[str, DecodeStrategy], ...] = DECODE_STRATEGIES,
) -> list[Response]:
    """Decode a body with the first strategy that succeeds.

    When every strategy fails, the last strategy's error is raised with the
    first one as its cause. Both are kept in ``DecodeError.attempts``.
    """
    attempts: list[DecodeError] = []
    for name, strategy in strategies:
        try:
            return strategy(raw, logger)
        except DecodeError as e:
            if logger:
                logger.debug("%s decode failed: %s", name, e)
            attempts.append(e)

    if not attempts:
        raise DecodeError("no decode strategy configured")
    first, last = attempts[0], attempts[-1]
    if first is last:
        raise last.__class__(str(last), attempts) from last.__cause__
    raise last.__class__(f"{last} (flat decode: {first})", attempts) from first
