# inbox_triage/email_source.py

import contextlib
import json
import logging
import os
from typing import Any, Dict, List, Protocol, runtime_checkable

from .errors import LoadError, StoreWriteError

logger = logging.getLogger(__name__)

DEFAULT_DATA_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "data", "mock_inbox.json")


@runtime_checkable
class EmailSource(Protocol):
    """Interface for any backing source of inbox records."""

    def get_emails(self) -> List[Dict[str, Any]]:
        """
        Returns a list of raw email dicts with keys:
        - id: str
        - from: {"name": str, "email": str}
        - subject: str
        - date: ISO-8601 str
        - body: str
        - unread: bool
        - requiresResponse: bool
        """
        ...

    def save_emails(self, emails: List[Dict[str, Any]]) -> None:
        """Replace the stored records with `emails`."""
        ...


# ============================================================
# Local mock inbox (JSON file)
# ============================================================

class JsonFileEmailSource:
    """
    Reads and rewrites the mock inbox file:

        {"emails": [ {...}, {...} ]}

    The file is always UTF-8; writing with ensure_ascii=False keeps emoji
    in subjects readable in the file itself.
    """

    def __init__(self, path: str = DEFAULT_DATA_PATH):
        self.path = path

    def get_emails(self) -> List[Dict[str, Any]]:
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except FileNotFoundError as e:
            raise LoadError(f"Inbox file not found: {self.path}") from e
        except (OSError, UnicodeDecodeError) as e:
            raise LoadError(f"Could not read inbox file {self.path}: {e}") from e
        except json.JSONDecodeError as e:
            raise LoadError(f"Inbox file {self.path} is not valid JSON: {e}") from e

        if not isinstance(data, dict) or not isinstance(data.get("emails"), list):
            raise LoadError(f"Inbox file {self.path} has no 'emails' list")

        logger.debug("Read %d records from %s", len(data["emails"]), self.path)
        return data["emails"]

    def save_emails(self, emails: List[Dict[str, Any]]) -> None:
        # temp file + replace: the inbox is never half-written
        tmp_path = f"{self.path}.tmp"
        try:
            with open(tmp_path, "w", encoding="utf-8") as fh:
                json.dump({"emails": emails}, fh, indent=2, ensure_ascii=False)
                fh.write("\n")
            os.replace(tmp_path, self.path)
        except OSError as e:
            with contextlib.suppress(OSError):
                os.remove(tmp_path)
            raise StoreWriteError(f"Could not write inbox file {self.path}: {e}") from e

        logger.debug("Wrote %d records to %s", len(emails), self.path)


# ============================================================
# Default source selector
# ============================================================

def get_default_email_source() -> EmailSource:
    """
    Default email source for the whole app.
    INBOX_DATA_PATH overrides the bundled mock inbox.
    """
    return JsonFileEmailSource(os.getenv("INBOX_DATA_PATH", DEFAULT_DATA_PATH))
