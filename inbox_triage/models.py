from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


_MISSING = object()


def _typed(record: Dict[str, Any], key: str, kind: type, default: Any = _MISSING) -> Any:
    value = record[key] if default is _MISSING else record.get(key, default)
    if not isinstance(value, kind):
        raise TypeError(f"{key} must be {kind.__name__}, got {type(value).__name__}")
    return value


@dataclass(frozen=True)
class Sender:
    name: str
    email: str


@dataclass
class Email:
    id: str
    sender: Sender
    subject: str
    date: datetime
    body: str
    unread: bool = True
    requires_response: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Email":
        """
        Build an Email from a record of the inbox file.
        Raises KeyError / TypeError / ValueError on malformed records.
        """
        sender = data["from"]
        if not isinstance(sender, dict):
            raise TypeError(f"from must be an object, got {type(sender).__name__}")
        return cls(
            id=_typed(data, "id", str),
            sender=Sender(name=_typed(sender, "name", str), email=_typed(sender, "email", str)),
            subject=_typed(data, "subject", str),
            date=datetime.fromisoformat(_typed(data, "date", str).replace("Z", "+00:00")),
            body=_typed(data, "body", str),
            unread=_typed(data, "unread", bool, True),
            requires_response=_typed(data, "requiresResponse", bool, False),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "from": {"name": self.sender.name, "email": self.sender.email},
            "subject": self.subject,
            "date": self.date.isoformat().replace("+00:00", "Z"),
            "body": self.body,
            "unread": self.unread,
            "requiresResponse": self.requires_response,
        }


class DraftStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    EDITED = "edited"
    SKIPPED = "skipped"

    @property
    def is_terminal(self) -> bool:
        return self is not DraftStatus.PENDING


@dataclass
class Draft:
    email_id: str
    content: str
    edited_content: Optional[str] = None
    status: DraftStatus = DraftStatus.PENDING

    @property
    def text(self) -> str:
        """The reply as it would be sent: the edit if there is one."""
        return self.edited_content if self.edited_content is not None else self.content


@dataclass
class ChatMessage:
    text: str
    is_user: bool
    timestamp: datetime = field(default_factory=datetime.now)
