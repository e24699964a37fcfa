class InboxError(Exception):
    """Base class for inbox triage failures."""


class LoadError(InboxError):
    """The inbox file could not be read or is malformed."""


class StoreWriteError(InboxError):
    """The inbox file could not be rewritten after a change."""


class ProcessingError(InboxError):
    """Summarizing or drafting failed for a single email."""

    def __init__(self, email_id: str, message: str) -> None:
        super().__init__(f"{email_id}: {message}")
        self.email_id = email_id
