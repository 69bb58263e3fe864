"""
Wire codec for write notifications.

A frame is a type tag followed by the record id and a fixed, kind-specific
list of field values, all joined with ':'::

    1:<id>:<content>:<user>     message created
    2:<id>:<username>           user created

Decoding is strict: the tag selects the field list and the frame must carry
exactly that many values. ':' and '%' inside values are escaped as %3A and
%25 so arbitrary text survives the round trip.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Tuple

from common.constants import MESSAGE_TAG, USER_TAG, WIRE_FIELD_SEPARATOR
from appnode.exceptions import ReplicationError, WireDecodeError, WireEncodeError

_ESCAPES = {"%": "%25", ":": "%3A"}
_UNESCAPES = {"25": "%", "3A": ":", "3a": ":"}
_ESCAPE_PATTERN = re.compile(r"[%:]")
_UNESCAPE_PATTERN = re.compile(r"%(25|3A|3a)")


class EntityKind(Enum):
    MESSAGE = (MESSAGE_TAG, "messages", ("content", "user"))
    USER = (USER_TAG, "users", ("username",))

    def __init__(self, tag: str, collection: str, fields: Tuple[str, ...]):
        self.tag = tag
        self.collection = collection
        self.fields = fields

    @classmethod
    def from_tag(cls, tag: str) -> "EntityKind":
        for kind in cls:
            if kind.tag == tag:
                return kind
        raise WireDecodeError(f"Unknown entity tag: {tag!r}")

    @classmethod
    def from_collection(cls, collection: str) -> "EntityKind":
        for kind in cls:
            if kind.collection == collection:
                return kind
        raise ReplicationError(f"Collection {collection!r} is not replicated")


@dataclass(frozen=True)
class WriteNotification:
    """One completed local write, ready to be propagated to replicas."""

    kind: EntityKind
    record_id: str
    fields: Tuple[Tuple[str, str], ...]

    @classmethod
    def message(cls, record_id: str, content: str, user: str) -> "WriteNotification":
        return cls(EntityKind.MESSAGE, record_id, (("content", content), ("user", user)))

    @classmethod
    def user(cls, record_id: str, username: str) -> "WriteNotification":
        return cls(EntityKind.USER, record_id, (("username", username),))

    @classmethod
    def from_record(cls, collection: str, record) -> "WriteNotification":
        kind = EntityKind.from_collection(collection)
        return cls(kind, record.id, tuple((name, record.get_string(name)) for name in kind.fields))

    @property
    def values(self) -> Dict[str, str]:
        return dict(self.fields)

    @property
    def data(self) -> Dict[str, str]:
        result = {"id": self.record_id}
        result.update(self.fields)
        return result


def _escape(value: str) -> str:
    return _ESCAPE_PATTERN.sub(lambda m: _ESCAPES[m.group(0)], value)


def _unescape(value: str) -> str:
    return _UNESCAPE_PATTERN.sub(lambda m: _UNESCAPES[m.group(1)], value)


def encode(notification: WriteNotification) -> str:
    """
    Serialize a notification into a single text frame.

    Raises:
        WireEncodeError: If the field names do not match the kind's schema
    """
    kind = notification.kind
    names = tuple(name for name, _ in notification.fields)
    if names != kind.fields:
        raise WireEncodeError(
            f"{kind.name} notification expects fields {kind.fields}, got {names}"
        )
    if not notification.record_id:
        raise WireEncodeError("Notification has an empty record id")

    parts = [kind.tag, _escape(notification.record_id)]
    parts.extend(_escape(value or "") for _, value in notification.fields)
    return WIRE_FIELD_SEPARATOR.join(parts)


def decode(frame: str) -> WriteNotification:
    """
    Parse a text frame produced by ``encode``.

    Raises:
        WireDecodeError: If the tag is unknown or the arity does not match
    """
    if not isinstance(frame, str) or not frame:
        raise WireDecodeError("Empty or non-text frame")

    parts = frame.split(WIRE_FIELD_SEPARATOR)
    kind = EntityKind.from_tag(parts[0])

    expected = 2 + len(kind.fields)
    if len(parts) != expected:
        raise WireDecodeError(
            f"{kind.name} frame expects {expected} fields, got {len(parts)}"
        )

    record_id = _unescape(parts[1])
    if not record_id:
        raise WireDecodeError(f"{kind.name} frame has an empty record id")

    values = tuple(_unescape(part) for part in parts[2:])
    return WriteNotification(kind, record_id, tuple(zip(kind.fields, values)))
