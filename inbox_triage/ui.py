# inbox_triage/ui.py

import logging
from typing import Callable, Dict, Optional

from rich import box
from rich.console import Console, Group
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from .models import DraftStatus, Email
from .session import SessionController, SessionView, State, Strategy

logger = logging.getLogger(__name__)

# Line-based key bindings per state; anything else typed while reviewing is a chat command.
KEYS: Dict[State, Dict[str, str]] = {
    State.DASHBOARD: {"y": "confirm", "": "confirm", "n": "quit", "q": "quit"},
    State.SUMMARIZING: {"y": "confirm", "": "confirm", "b": "back", "n": "back", "q": "quit"},
    State.REVIEWING: {"a": "accept", "e": "edit", "s": "skip", "b": "back", "q": "quit"},
    State.CONFIRMING: {"y": "confirm", "": "confirm", "b": "back", "q": "quit"},
    State.ERROR: {"b": "back", "q": "quit"},
}

PROMPTS = {
    State.DASHBOARD: "Press [Y]/Enter to process this batch, [N] to exit",
    State.SUMMARIZING: "Press [Y]/Enter to draft replies, [B] to go back",
    State.REVIEWING: "[A] Accept  [E] Edit  [S] Skip  [B] Back  [Q] Quit  |  or chat: 'ai: make it shorter'",
    State.CONFIRMING: "Press [Y]/Enter to send and mark as read, [B] to go back",
    State.ERROR: "Press [B] to go back, [Q] to quit",
}


def format_date(email: Email) -> str:
    return email.date.strftime("%b %d, %I:%M %p")


def truncate(text: str, max_length: int = 60) -> str:
    return text if len(text) <= max_length else text[:max_length] + "..."


def reply_tag(email: Email) -> Text:
    if email.requires_response:
        return Text("Needs Reply", style="yellow")
    return Text("Info Only", style="blue")


class TerminalUI:
    """
    Renders SessionController views with rich and feeds user lines back
    as controller actions. Holds no session state of its own.
    """

    def __init__(
        self,
        controller: SessionController,
        console: Optional[Console] = None,
        debug: bool = False,
        input_func: Optional[Callable[[str], str]] = None,
    ) -> None:
        self.controller = controller
        self.console = console or Console()
        self.debug = debug
        self._input = input_func or self.console.input

    # ---------------------------
    # Main loop
    # ---------------------------

    def run(self) -> None:
        self.console.print(Text("Loading your inbox...", style="cyan"))
        self.controller.start()

        while True:
            view = self.controller.view()
            self.render(view)

            if self.controller.finished:
                break
            if view.state is State.ERROR and not self.controller.error_recoverable:
                break

            try:
                line = self._input("> ")
            except (EOFError, KeyboardInterrupt):
                self.controller.quit()
                break
            self.handle(view.state, line)
            if self.controller.quit_requested:
                break

    def handle(self, state: State, line: str) -> None:
        key = line.strip().lower()
        action = KEYS.get(state, {}).get(key)

        if action is None:
            if state is State.REVIEWING and line.strip():
                reply = self.controller.submit_chat(line)
                logger.debug("chat reply: %s", reply)
            else:
                self.console.print(Text(f"Unknown key {line.strip()!r}", style="red"))
            return

        if action == "edit":
            self._edit()
        else:
            getattr(self.controller, action)()

    def _edit(self) -> None:
        draft = self.controller.current_draft()
        if draft is None:
            return
        self.console.print(Text("Current reply:", style="yellow"))
        self.console.print(Text(draft.text))
        self.console.print(Text("Type your reply on one line (\\n for new lines), empty to cancel.", style="cyan"))
        text = self._input("edit> ").replace("\\n", "\n")
        if not self.controller.edit(text):
            self.console.print(Text("Edit cancelled.", style="gray50"))

    # ---------------------------
    # Rendering
    # ---------------------------

    def render(self, view: SessionView) -> None:
        renderer = {
            State.DASHBOARD: self._render_dashboard,
            State.SUMMARIZING: self._render_summaries,
            State.REVIEWING: self._render_review,
            State.CONFIRMING: self._render_confirm,
            State.COMPLETE: self._render_complete,
            State.ERROR: self._render_error,
        }.get(view.state)
        if renderer is None:
            return

        self.console.print()
        renderer(view)

        if view.chat and view.state is State.REVIEWING:
            for message in view.chat[-3:]:
                who, style = ("You", "cyan") if message.is_user else ("Assistant", "green")
                self.console.print(Text(f"{who}: {message.text}", style=style))

        prompt = PROMPTS.get(view.state)
        if view.state is State.ERROR and not self.controller.error_recoverable:
            prompt = None
        if prompt:
            self.console.print(Rule(style="gray50"))
            self.console.print(Text(prompt, style="cyan"))

        if self.debug:
            self._render_debug()

    def _render_dashboard(self, view: SessionView) -> None:
        header = Text.assemble(
            ("📧 Inbox Triage", "bold cyan"),
            "  Unread Emails: ",
            (str(view.unread_count), "bold yellow"),
            ("  •  Mode: ", "gray50"),
            (view.backend, "green"),
        )

        table = Table(box=box.SIMPLE, show_header=True, header_style="bold")
        table.add_column("#", justify="right")
        table.add_column("Type")
        table.add_column("Subject", style="bold")
        table.add_column("From", style="green")
        table.add_column("Date", style="gray50")
        for index, email in enumerate(view.batch, start=1):
            table.add_row(
                str(index),
                reply_tag(email),
                f'"{truncate(email.subject)}"',
                email.sender.name,
                format_date(email),
            )

        parts = [header, Text(f"Batch #{view.batch_number} ({len(view.batch)} emails):", style="cyan"), table]
        if view.remaining_after_batch:
            parts.append(
                Text(f"({view.remaining_after_batch} more unread emails after this batch)", style="gray50")
            )
        parts.append(Text(f"Process these {len(view.batch)} emails now?"))
        self.console.print(Panel(Group(*parts), border_style="cyan", box=box.ROUNDED))

    def _render_summaries(self, view: SessionView) -> None:
        self.console.print(Text(f"📊 Batch Summary ({len(view.batch)} emails)", style="bold cyan"))
        self.console.print(Rule(style="gray50"))
        for index, email in enumerate(view.batch, start=1):
            line = Text.assemble(
                f"{index:2d}. [",
                reply_tag(email),
                "] ",
                (email.sender.name, "bold green"),
                " - ",
                f'"{email.subject}"',
            )
            self.console.print(line)
            summary = view.summaries.get(email.id, "Summary not available")
            self.console.print(Text(f"    💡 {summary}", style="yellow"))

        needs_reply = sum(1 for e in view.batch if e.requires_response)
        self.console.print(Rule(style="gray50"))
        self.console.print(
            Text.assemble(
                (str(needs_reply), "yellow"),
                " emails need replies, ",
                (str(len(view.batch) - needs_reply), "blue"),
                " are informational only",
            )
        )

    def _render_review(self, view: SessionView) -> None:
        email, draft = view.current_email, view.current_draft
        if email is None or draft is None:
            self.console.print(Text("Error: Could not load current email or draft", style="red"))
            return

        reviewed = sum(1 for d in view.drafts if d.status.is_terminal)
        if view.strategy is Strategy.STREAMING:
            position = f"email {len(view.summaries)}/{len(view.batch)}"
        else:
            position = f"{view.current_index + 1}/{len(view.drafts)}"

        original = Group(
            Text.assemble(
                (email.sender.name, "bold green"),
                (" - ", "gray50"),
                f'"{email.subject}"',
                (" - " + format_date(email), "gray50"),
            ),
            Text(f'"{truncate(email.body, 150)}"', style="gray50"),
            Text(f"💡 {view.summaries.get(email.id, 'Summary not available')}", style="yellow"),
        )
        self.console.print(Text(f"📝 Draft Review ({position})", style="bold cyan"))
        self.console.print(Panel(original, title="Original Email", border_style="gray50"))
        self.console.print(Panel(Text(draft.text), title="Draft Reply", border_style="yellow"))
        self.console.print(Text(f"Progress: {reviewed}/{len(view.drafts)} reviewed", style="gray50"))

    def _render_confirm(self, view: SessionView) -> None:
        self.console.print(Text("📤 Ready to send", style="bold cyan"))
        if not view.drafts:
            self.console.print(Text("✅ No emails in this batch require responses!", style="green"))
        by_id = {e.id: e for e in view.batch}
        for draft in view.drafts:
            email = by_id.get(draft.email_id)
            name = email.sender.name if email else draft.email_id
            subject = email.subject if email else ""
            style = "gray50" if draft.status is DraftStatus.SKIPPED else "green"
            self.console.print(Text(f"  [{draft.status.value}] {name} - \"{subject}\"", style=style))

    def _render_complete(self, view: SessionView) -> None:
        self.console.print(Text("🎉 Inbox Zero Achieved!", style="bold green"))
        self.console.print(Text("All unread emails have been processed."))
        self.console.print(Text(f"{len(view.sent)} replies sent this session.", style="cyan"))

    def _render_error(self, view: SessionView) -> None:
        self.console.print(Text(f"Error: {view.error}", style="red"))

    def _render_debug(self) -> None:
        table = Table(title="Debug Info", box=box.SIMPLE, show_header=False)
        table.add_column("counter", style="gray50")
        table.add_column("value", justify="right")
        for name, value in self.controller.stats().items():
            table.add_row(name, str(value))
        self.console.print(table)
