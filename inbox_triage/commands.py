# inbox_triage/commands.py

from dataclasses import dataclass
from enum import Enum


class CommandKind(str, Enum):
    IMPROVE = "improve"    # ai: make it shorter
    CLARIFY = "clarify"    # ask: which invoice?
    EDIT = "edit"          # edit: full replacement text
    ACCEPT = "accept"
    SKIP = "skip"
    BACK = "back"
    QUIT = "quit"
    MESSAGE = "message"    # anything else


@dataclass(frozen=True)
class Command:
    kind: CommandKind
    payload: str = ""


# "<prefix>: payload" commands; prefixes are case-insensitive
PREFIXED = {
    "ai": CommandKind.IMPROVE,
    "ask": CommandKind.CLARIFY,
    "edit": CommandKind.EDIT,
}

BARE = {
    "accept": CommandKind.ACCEPT,
    "skip": CommandKind.SKIP,
    "back": CommandKind.BACK,
    "quit": CommandKind.QUIT,
    "exit": CommandKind.QUIT,
}


def parse_command(text: str) -> Command:
    """
    Parse one chat line into a tagged Command.

    >>> parse_command("AI: be more formal")
    Command(kind=<CommandKind.IMPROVE: 'improve'>, payload='be more formal')
    >>> parse_command("skip").kind
    <CommandKind.SKIP: 'skip'>
    """
    stripped = text.strip()

    prefix, sep, rest = stripped.partition(":")
    if sep:
        kind = PREFIXED.get(prefix.strip().lower())
        if kind is not None:
            return Command(kind, rest.strip())

    kind = BARE.get(stripped.lower())
    if kind is not None:
        return Command(kind)

    return Command(CommandKind.MESSAGE, stripped)
