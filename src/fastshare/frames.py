"""Text control frame encoding and decoding for the fastshare relay protocol."""

import base64
import binascii
import json
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from .models import ClientInfo
from .types import (
    ROUTE_ACK,
    ROUTE_PAIR_CODE,
    ROUTE_SIZE,
    ProtocolViolationError,
)


@dataclass
class TextFrame:
    """A decoded control frame: route and raw payload text."""
    route: str
    payload: str


def encode_text_frame(route: str, payload: Any) -> str:
    """
    Encode a control frame.

    Format:
        <route>\\n<json payload>

    Args:
        route: Message route (e.g. "receiverInfo")
        payload: JSON-serializable payload

    Returns:
        Frame text
    """
    return route + "\n" + json.dumps(payload, separators=(",", ":"))


def decode_text_frame(message: str) -> TextFrame:
    """
    Split a control frame into route and payload.

    Raises:
        ProtocolViolationError: If the frame is empty or has no payload line
    """
    if not message:
        raise ProtocolViolationError("Empty message")

    parts = message.split("\n", 1)
    if len(parts) != 2:
        raise ProtocolViolationError("Invalid message format")

    return TextFrame(route=parts[0], payload=parts[1])


def _b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _b64decode(value: Any, field: str) -> bytes:
    if not isinstance(value, str):
        raise ProtocolViolationError(f"Field {field} must be a base64 string")
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ProtocolViolationError(f"Field {field} is not valid base64: {e}") from e


def client_info_to_dict(info: ClientInfo) -> dict:
    """Serialize ClientInfo with its wire field names."""
    return {
        "PubKey": _b64encode(info.pub_key),
        "Salt": _b64encode(info.salt),
        "Hmac": _b64encode(info.hmac),
    }


def client_info_from_dict(data: Any) -> ClientInfo:
    """
    Deserialize ClientInfo from its wire form.

    Raises:
        ProtocolViolationError: If a field is missing or malformed
    """
    if not isinstance(data, dict):
        raise ProtocolViolationError("ClientInfo payload must be an object")

    for field in ("PubKey", "Salt", "Hmac"):
        if field not in data:
            raise ProtocolViolationError(f"ClientInfo missing {field}")

    return ClientInfo(
        pub_key=_b64decode(data["PubKey"], "PubKey"),
        salt=_b64decode(data["Salt"], "Salt"),
        hmac=_b64decode(data["Hmac"], "Hmac"),
    )


def encode_client_info_frame(route: str, info: ClientInfo) -> str:
    """Encode a senderInfo/receiverInfo frame."""
    return encode_text_frame(route, client_info_to_dict(info))


def encode_pair_code_frame(pair_code: str) -> str:
    """Encode the relay's pairCode frame."""
    return encode_text_frame(ROUTE_PAIR_CODE, pair_code)


def encode_size_frame(size: int) -> str:
    """Encode the size frame; the payload is a bare decimal integer."""
    return f"{ROUTE_SIZE}\n{int(size)}"


def encode_ack_frame(chunks: int) -> str:
    """Encode a flow-control acknowledgment of decrypted chunks."""
    return f"{ROUTE_ACK}\n{int(chunks)}"


def parse_json_payload(frame: TextFrame) -> Any:
    """
    Parse a frame's JSON payload.

    Raises:
        ProtocolViolationError: If the payload is not valid JSON
    """
    try:
        return json.loads(frame.payload)
    except json.JSONDecodeError as e:
        raise ProtocolViolationError(f"Invalid {frame.route} payload: {e}") from e


def parse_client_info(frame: TextFrame) -> ClientInfo:
    """Parse a senderInfo/receiverInfo frame payload."""
    return client_info_from_dict(parse_json_payload(frame))


def parse_pair_code(frame: TextFrame) -> str:
    """Parse a pairCode frame payload."""
    pair_code = parse_json_payload(frame)
    if not isinstance(pair_code, str):
        raise ProtocolViolationError("pairCode payload must be a string")
    return pair_code


def parse_count(frame: TextFrame) -> int:
    """
    Parse a non-negative decimal count (size or ack payload).

    Raises:
        ProtocolViolationError: If the payload is not a non-negative integer
    """
    text = frame.payload.strip()
    if not (text.isascii() and text.isdigit()):
        raise ProtocolViolationError(f"Invalid {frame.route} payload: {frame.payload!r}")
    return int(text)


def build_query_params(info: ClientInfo, pair_code: Optional[str] = None) -> dict:
    """
    Connection query parameters announcing a peer to the relay.

    Args:
        info: Our signed ClientInfo
        pair_code: The pair code to join (receiver only)

    Returns:
        Mapping of pubkey/salt/hmac (and paircode) to strings
    """
    params = {
        "pubkey": _b64encode(info.pub_key),
        "salt": _b64encode(info.salt),
        "hmac": _b64encode(info.hmac),
    }
    if pair_code is not None:
        params["paircode"] = pair_code
    return params


def parse_query_params(params: Mapping[str, str]) -> ClientInfo:
    """
    Recover a peer's ClientInfo from its connection query parameters.

    Raises:
        ProtocolViolationError: If a parameter is missing or malformed
    """
    for name in ("pubkey", "salt", "hmac"):
        if not params.get(name):
            raise ProtocolViolationError(f"Missing {name} parameter")

    return ClientInfo(
        pub_key=_b64decode(params["pubkey"], "pubkey"),
        salt=_b64decode(params["salt"], "salt"),
        hmac=_b64decode(params["hmac"], "hmac"),
    )
