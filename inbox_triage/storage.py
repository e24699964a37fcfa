# inbox_triage/storage.py

import logging
from typing import Iterable, List, Optional

from .email_source import EmailSource, get_default_email_source
from .errors import LoadError
from .models import Email

logger = logging.getLogger(__name__)


class InboxStore:
    """
    In-memory inbox backed by an EmailSource.

    - Keeps emails in load order
    - Slices batches out of the unread ones
    - Persists read flags back to the source
    """

    def __init__(self, source: Optional[EmailSource] = None) -> None:
        if source is None:
            source = get_default_email_source()
        self.source = source
        self._emails: List[Email] = []

    # ---------------------------
    # Loading / persistence
    # ---------------------------

    def load_all(self) -> None:
        """Replace the in-memory inbox with the source's records."""
        records = self.source.get_emails()

        emails: List[Email] = []
        seen = set()
        for index, record in enumerate(records):
            try:
                email = Email.from_dict(record)
            except (KeyError, TypeError, ValueError) as e:
                raise LoadError(f"Malformed email record at position {index}: {e!r}") from e
            if email.id in seen:
                raise LoadError(f"Duplicate email id {email.id!r}")
            seen.add(email.id)
            emails.append(email)

        self._emails = emails
        logger.info(
            "Loaded %d emails (%d unread)", len(emails), self.unread_count()
        )

    def _save(self) -> None:
        self.source.save_emails([e.to_dict() for e in self._emails])

    def reset(self) -> None:
        """Mark every email unread again."""
        for email in self._emails:
            email.unread = True
        self._save()
        logger.info("Inbox reset: %d emails marked unread", len(self._emails))

    # ---------------------------
    # Queries
    # ---------------------------

    def unread_emails(self) -> List[Email]:
        return [e for e in self._emails if e.unread]

    def unread_count(self) -> int:
        return sum(1 for e in self._emails if e.unread)

    def batch(self, size: int = 10, offset: int = 0) -> List[Email]:
        """Up to `size` unread emails starting at `offset` in the unread list."""
        if size <= 0:
            raise ValueError(f"batch size must be positive, got {size}")
        if offset < 0:
            raise ValueError(f"batch offset must not be negative, got {offset}")
        return self.unread_emails()[offset:offset + size]

    def get_email(self, email_id: str) -> Optional[Email]:
        for email in self._emails:
            if email.id == email_id:
                return email
        return None

    def emails_requiring_response(self) -> List[Email]:
        return [e for e in self._emails if e.requires_response]

    def total_count(self) -> int:
        return len(self._emails)

    # ---------------------------
    # Mutations
    # ---------------------------

    def mark_read(self, email_ids: Iterable[str]) -> int:
        """
        Mark the given emails as read and persist.
        Unknown or already-read ids are ignored; returns how many changed.
        """
        if isinstance(email_ids, str):
            email_ids = [email_ids]
        wanted = set(email_ids)
        flipped = [e for e in self._emails if e.id in wanted and e.unread]
        for email in flipped:
            email.unread = False

        if flipped:
            try:
                self._save()
            except Exception:
                # memory must keep matching the file
                for email in flipped:
                    email.unread = True
                raise
        logger.debug("mark_read: %d requested, %d changed", len(wanted), len(flipped))
        return len(flipped)
