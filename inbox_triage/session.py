# inbox_triage/session.py

"""
Session state machine:

    LOADING -> DASHBOARD -> SUMMARIZING -> REVIEWING -> CONFIRMING
                   ^                                        |
                   +----------- next batch -----------------+--> COMPLETE

ERROR can be entered from any state. The "streaming" strategy skips
SUMMARIZING and produces each summary/draft only when the review reaches
that email.

The controller owns all batch and draft state. The UI only reads view()
and calls the action methods (start, confirm, accept, edit, skip, back,
quit, submit_chat).
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

from . import ai_drafter
from .ai_drafter import Drafter, PatternDrafter
from .commands import CommandKind, parse_command
from .errors import InboxError, ProcessingError
from .models import ChatMessage, Draft, DraftStatus, Email
from .storage import InboxStore

logger = logging.getLogger(__name__)


class State(str, Enum):
    LOADING = "loading"
    DASHBOARD = "dashboard"
    SUMMARIZING = "summarizing"
    REVIEWING = "reviewing"
    CONFIRMING = "confirming"
    COMPLETE = "complete"
    ERROR = "error"


class Strategy(str, Enum):
    BATCH = "batch"
    STREAMING = "streaming"


@dataclass(frozen=True)
class SessionView:
    """Read-only snapshot handed to the presentation layer."""

    state: State
    strategy: Strategy
    batch: Tuple[Email, ...]
    summaries: Mapping[str, str]
    drafts: Tuple[Draft, ...]
    current_index: int
    current_email: Optional[Email]
    current_draft: Optional[Draft]
    offset: int
    batch_number: int
    unread_count: int
    remaining_after_batch: int
    error: str
    chat: Tuple[ChatMessage, ...]
    sent: Tuple[Draft, ...]
    backend: str


class SessionController:
    def __init__(
        self,
        store: InboxStore,
        drafter: Optional[Drafter] = None,
        strategy: Strategy = Strategy.BATCH,
        batch_size: int = 10,
        reset_inbox: bool = False,
    ) -> None:
        if batch_size <= 0:
            raise ValueError(f"batch size must be positive, got {batch_size}")
        self.store = store
        self.drafter = drafter if drafter is not None else PatternDrafter()
        self.strategy = Strategy(strategy)
        self.batch_size = batch_size
        self.reset_inbox = reset_inbox

        self._state = State.LOADING
        self._error = ""
        self._error_from: Optional[State] = None
        self._quit = False

        self.offset = 0
        self._presented: List[str] = []
        self._batch: List[Email] = []
        self._summaries: Dict[str, str] = {}
        self._drafts: List[Draft] = []
        self._index = 0
        self._stream_pos = 0

        self._chat: List[ChatMessage] = []
        self._sent: List[Draft] = []
        self.processing_errors: List[ProcessingError] = []

    # ---------------------------
    # Read-only access
    # ---------------------------

    @property
    def state(self) -> State:
        return self._state

    @property
    def finished(self) -> bool:
        return self._quit or self._state is State.COMPLETE

    @property
    def quit_requested(self) -> bool:
        return self._quit

    @property
    def error_recoverable(self) -> bool:
        return self._state is State.ERROR and self._error_from is not None

    def current_draft(self) -> Optional[Draft]:
        if self._state is State.REVIEWING and 0 <= self._index < len(self._drafts):
            return self._drafts[self._index]
        return None

    def current_email(self) -> Optional[Email]:
        draft = self.current_draft()
        if draft is None:
            return None
        return next((e for e in self._batch if e.id == draft.email_id), None)

    def view(self) -> SessionView:
        current = self.current_draft()
        unread = self.store.unread_count()
        return SessionView(
            state=self._state,
            strategy=self.strategy,
            batch=tuple(self._batch),
            summaries=MappingProxyType(dict(self._summaries)),
            drafts=tuple(replace(d) for d in self._drafts),
            current_index=self._index,
            current_email=self.current_email(),
            current_draft=replace(current) if current is not None else None,
            offset=self.offset,
            batch_number=self.offset // self.batch_size + 1,
            unread_count=unread,
            remaining_after_batch=max(0, unread - self._cursor() - len(self._batch)),
            error=self._error,
            chat=tuple(self._chat),
            sent=tuple(self._sent),
            backend=getattr(self.drafter, "name", type(self.drafter).__name__),
        )

    def stats(self) -> Dict[str, int]:
        """Counters shown by --debug."""
        by_status = {s: 0 for s in DraftStatus}
        for d in self._drafts:
            by_status[d.status] += 1
        return {
            "total_emails": self.store.total_count(),
            "unread": self.store.unread_count(),
            "requiring_response": len(self.store.emails_requiring_response()),
            "batch_size": len(self._batch),
            "offset": self.offset,
            "summaries": len(self._summaries),
            "drafts": len(self._drafts),
            "pending": by_status[DraftStatus.PENDING],
            "accepted": by_status[DraftStatus.ACCEPTED],
            "edited": by_status[DraftStatus.EDITED],
            "skipped": by_status[DraftStatus.SKIPPED],
            "current_index": self._index,
            "stream_position": self._stream_pos,
            "sent": len(self._sent),
            "processing_errors": len(self.processing_errors),
        }

    # ---------------------------
    # Internal helpers
    # ---------------------------

    def _set_state(self, state: State) -> None:
        logger.debug("State %s -> %s", self._state.value, state.value)
        self._state = state

    def _fail(self, message: str, fatal: bool = False) -> None:
        logger.error("Session error in %s: %s", self._state.value, message)
        self._error = message
        self._error_from = None if fatal else self._state
        self._set_state(State.ERROR)

    def _cursor(self) -> int:
        """
        Start of the next batch in the unread list: presented emails that
        are still unread always form a prefix of it.
        """
        unread_ids = {e.id for e in self.store.unread_emails()}
        return sum(1 for email_id in self._presented if email_id in unread_ids)

    def _enter_dashboard(self) -> None:
        cursor = self._cursor()
        if self.store.unread_count() - cursor <= 0:
            self._batch = []
            self._set_state(State.COMPLETE)
            logger.info("No unread email left to present; session complete")
            return
        self._batch = self.store.batch(self.batch_size, cursor)
        self._summaries = {}
        self._drafts = []
        self._index = 0
        self._stream_pos = 0
        self._set_state(State.DASHBOARD)

    def _prepare_batch(self) -> None:
        errors = self.processing_errors
        self._summaries = ai_drafter.summarize_batch(self.drafter, self._batch, errors)
        self._drafts = ai_drafter.generate_drafts(self.drafter, self._batch, errors)
        self._index = 0
        logger.info(
            "Prepared batch %d: %d summaries, %d drafts",
            self.offset // self.batch_size + 1,
            len(self._summaries),
            len(self._drafts),
        )

    def _stream_next(self) -> None:
        """
        Process batch emails one at a time until one needs a reply.
        With none left, the batch is ready for confirmation.
        """
        while self._stream_pos < len(self._batch):
            email = self._batch[self._stream_pos]
            self._stream_pos += 1

            self._summaries[email.id] = ai_drafter.summarize_one(
                self.drafter, email, self.processing_errors
            )
            if not email.requires_response:
                continue

            self._drafts.append(
                ai_drafter.draft_one(self.drafter, email, self.processing_errors)
            )
            self._index = len(self._drafts) - 1
            self._set_state(State.REVIEWING)
            return

        self._set_state(State.CONFIRMING)

    def _resolve(self, status: DraftStatus, edited: Optional[str] = None) -> bool:
        draft = self.current_draft()
        if draft is None:
            logger.debug("Ignoring %s: no draft under review", status.value)
            return False

        draft.status = status
        if edited is not None:
            draft.edited_content = edited
        logger.debug("Draft for %s -> %s", draft.email_id, status.value)

        if self.strategy is Strategy.STREAMING:
            self._stream_next()
        elif self._index < len(self._drafts) - 1:
            self._index += 1
        else:
            self._set_state(State.CONFIRMING)
        return True

    def _send(self) -> None:
        resolved = [d for d in self._drafts if d.status.is_terminal]
        try:
            self.store.mark_read(d.email_id for d in resolved)
        except InboxError as e:
            self._fail(str(e))
            return

        self._sent.extend(
            replace(d)
            for d in resolved
            if d.status in (DraftStatus.ACCEPTED, DraftStatus.EDITED)
        )
        self._presented.extend(e.id for e in self._batch)
        logger.info(
            "Batch %d confirmed: %d marked read, %d unread left",
            self.offset // self.batch_size + 1,
            len(resolved),
            self.store.unread_count(),
        )
        self.offset += self.batch_size
        self._enter_dashboard()

    # ---------------------------
    # Actions
    # ---------------------------

    def start(self) -> None:
        """LOADING -> DASHBOARD (or COMPLETE / ERROR)."""
        if self._state is not State.LOADING:
            logger.debug("start() ignored in %s", self._state.value)
            return
        try:
            self.store.load_all()
            if self.reset_inbox:
                self.store.reset()
        except InboxError as e:
            self._fail(str(e), fatal=True)
            return
        self._enter_dashboard()

    def confirm(self) -> bool:
        """Continue from DASHBOARD, SUMMARIZING or CONFIRMING."""
        state = self._state
        if state is State.DASHBOARD:
            if self.strategy is Strategy.STREAMING:
                self._summaries = {}
                self._drafts = []
                self._stream_pos = 0
                self._stream_next()
            else:
                self._prepare_batch()
                self._set_state(State.SUMMARIZING)
            return True

        if state is State.SUMMARIZING:
            if self._drafts:
                self._index = 0
                self._set_state(State.REVIEWING)
            else:
                self._set_state(State.CONFIRMING)
            return True

        if state is State.CONFIRMING:
            self._send()
            return True

        logger.debug("confirm() ignored in %s", state.value)
        return False

    def accept(self) -> bool:
        return self._resolve(DraftStatus.ACCEPTED)

    def edit(self, text: str) -> bool:
        """Accept the current draft with `text` as its content; blank text cancels."""
        if not text.strip():
            logger.debug("Edit cancelled")
            return False
        return self._resolve(DraftStatus.EDITED, edited=text)

    def skip(self) -> bool:
        return self._resolve(DraftStatus.SKIPPED)

    def back(self) -> bool:
        """Return to the preceding state. Nothing already marked read is undone."""
        state = self._state

        if state is State.SUMMARIZING:
            self._set_state(State.DASHBOARD)
        elif state is State.REVIEWING:
            if self.strategy is Strategy.STREAMING:
                self._summaries = {}
                self._drafts = []
                self._index = 0
                self._stream_pos = 0
                self._set_state(State.DASHBOARD)
            else:
                self._set_state(State.SUMMARIZING)
        elif state is State.CONFIRMING:
            if self._drafts:
                self._index = len(self._drafts) - 1
                self._set_state(State.REVIEWING)
            elif self.strategy is Strategy.STREAMING:
                self._set_state(State.DASHBOARD)
            else:
                self._set_state(State.SUMMARIZING)
        elif state is State.ERROR and self._error_from is not None:
            self._error = ""
            self._set_state(self._error_from)
            self._error_from = None
        else:
            logger.debug("back() ignored in %s", state.value)
            return False
        return True

    def quit(self) -> None:
        logger.info("Session quit in %s", self._state.value)
        self._quit = True

    # ---------------------------
    # Chat
    # ---------------------------

    def _say(self, text: str) -> str:
        self._chat.append(ChatMessage(text=text, is_user=False))
        return text

    def submit_chat(self, text: str) -> str:
        """
        Handle one chat line and return the assistant's reply.

        ai: <feedback>   improve the current draft
        ask: <question>  turn the current draft into a clarification request
        edit: <text>     replace the current draft and move on
        accept | skip | back | quit
        """
        if not text.strip():
            return ""
        self._chat.append(ChatMessage(text=text.strip(), is_user=True))
        command = parse_command(text)
        kind = command.kind

        if kind is CommandKind.QUIT:
            self.quit()
            return self._say("Goodbye!")
        if kind is CommandKind.BACK:
            return self._say("Going back." if self.back() else "Nothing to go back to.")

        draft = self.current_draft()
        email = self.current_email()
        if draft is None or email is None:
            return self._say("There is no draft under review right now.")

        if kind is CommandKind.ACCEPT:
            self.accept()
            return self._say("Draft accepted.")
        if kind is CommandKind.SKIP:
            self.skip()
            return self._say("Skipped.")
        if kind is CommandKind.EDIT:
            if not self.edit(command.payload):
                return self._say("Edit text was empty; draft unchanged.")
            return self._say("Draft replaced with your text.")

        if kind in (CommandKind.IMPROVE, CommandKind.CLARIFY):
            if not command.payload:
                return self._say("Please say what should change.")
            try:
                if kind is CommandKind.IMPROVE:
                    updated = ai_drafter.run_step(
                        email, "improve", self.drafter.improve,
                        draft.text, command.payload, email,
                    )
                else:
                    updated = ai_drafter.run_step(
                        email, "clarify", self.drafter.clarify, email, command.payload,
                    )
            except ProcessingError as e:
                logger.error("Chat command %s failed: %s", kind.value, e)
                return self._say("Failed to improve draft. Please try again.")
            draft.edited_content = updated
            return self._say("Draft updated successfully!")

        return self._say(
            "I didn't understand that. Try 'ai: <feedback>', 'ask: <question>', "
            "'edit: <text>', accept, skip, back or quit."
        )
