import json
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, ValidationError


class ChatMessage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: Literal["chat"] = "chat"
    text: str = ""
    senderName: str = ""
    timestamp: str = ""


class TypingIndicator(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: Literal["typing"] = "typing"


class UnknownPayload(BaseModel):
    """A text frame that is not one of the known message kinds.

    Still relayed; only kept around so it can be described in logs.
    """

    raw: str
    reason: Optional[str] = None


RelayPayload = Union[ChatMessage, TypingIndicator, UnknownPayload]


def decode_payload(raw: str) -> RelayPayload:
    """Decode one text frame into a message kind. Never raises."""
    try:
        data = json.loads(raw)
    except (ValueError, TypeError) as e:
        return UnknownPayload(raw=raw, reason=f"invalid JSON: {e}")
    except RecursionError:
        return UnknownPayload(raw=raw, reason="JSON nested too deeply")

    if not isinstance(data, dict):
        return UnknownPayload(raw=raw, reason="not a JSON object")

    kind = data.get("type")
    try:
        if kind == "typing":
            return TypingIndicator.model_validate(data)
        if kind is None or kind == "chat":
            return ChatMessage.model_validate({**data, "type": "chat"})
    except ValidationError as e:
        return UnknownPayload(raw=raw, reason=f"invalid {kind or 'chat'} message: {e.error_count()} errors")
    return UnknownPayload(raw=raw, reason=f"unknown type {kind!r}")


def describe_payload(payload: RelayPayload) -> str:
    """Short, log-friendly summary of a decoded frame."""
    if isinstance(payload, TypingIndicator):
        return "typing indicator"
    if isinstance(payload, ChatMessage):
        return f"chat message from {payload.senderName or 'anonymous'} ({len(payload.text)} chars)"
    if isinstance(payload, UnknownPayload):
        return f"unrecognised payload ({payload.reason})"
    raise TypeError(f"Unhandled payload kind: {type(payload).__name__}")
