# inbox_triage/triage.py

import logging
from typing import Optional

from rich.console import Console

from .ai_drafter import Drafter
from .config import Settings
from .email_source import EmailSource, JsonFileEmailSource
from .session import SessionController, Strategy
from .storage import InboxStore
from .ui import TerminalUI

logger = logging.getLogger(__name__)


def build_session(
    settings: Settings,
    source: Optional[EmailSource] = None,
    drafter: Optional[Drafter] = None,
) -> SessionController:
    """
    - Use the mock inbox file from settings unless a source is given
    - Wrap it in an InboxStore
    - Return a controller that has not been started yet
    """
    if source is None:
        source = JsonFileEmailSource(settings.data_path)

    return SessionController(
        store=InboxStore(source),
        drafter=drafter,
        strategy=Strategy(settings.strategy),
        batch_size=settings.batch_size,
        reset_inbox=settings.reset_inbox,
    )


def run_triage(settings: Settings, console: Optional[Console] = None) -> SessionController:
    controller = build_session(settings)
    logger.info(
        "Starting session: data=%s strategy=%s batch_size=%d reset=%s",
        settings.data_path,
        settings.strategy,
        settings.batch_size,
        settings.reset_inbox,
    )
    TerminalUI(controller, console=console, debug=settings.debug).run()
    return controller
