# inbox_triage/ai_drafter.py

"""
Pattern-matching stand-in for an AI summarizer / reply drafter.

Every function here is pure: the same Email always produces the same text.
Rules are checked top to bottom and the first match wins.
"""

import logging
from typing import Dict, List, Optional, Protocol

from .errors import ProcessingError
from .models import Draft, Email

logger = logging.getLogger(__name__)

SIGN_OFF = "Best regards"


def _lowered(email: Email):
    return email.subject.lower(), email.body.lower()


def _contains_any(text: str, *words: str) -> bool:
    return any(w in text for w in words)


def summarize(email: Email) -> str:
    subject, body = _lowered(email)
    name = email.sender.name

    if _contains_any(subject, "timeline", "schedule"):
        return f"{name} is requesting an updated project timeline and delivery schedule."
    if _contains_any(subject, "newsletter", "digest"):
        return f"Newsletter/digest email from {name} - informational content only."
    if "reminder" in subject or "reminder" in body:
        return f"{name} is sending a reminder about upcoming deadlines or tasks."
    if _contains_any(subject, "feedback", "review"):
        return f"{name} is sharing feedback or requesting review of work/documents."
    if _contains_any(subject, "invoice", "payment"):
        return f"{name} is following up on billing/payment related matters."
    if _contains_any(subject, "meeting", "interview"):
        return f"{name} is scheduling or following up on meeting/interview arrangements."
    if "question" in subject or "?" in body:
        return f"{name} has questions that need answers or clarification."
    return f'{name} sent a message regarding "{email.subject}".'


def _reply(name: str, middle: str) -> str:
    return f"Hi {name},\n\n{middle}\n\n{SIGN_OFF}"


def draft_reply(email: Email) -> str:
    """
    Short reply addressed to the sender.
    Returns "" for emails that don't require a response.
    """
    if not email.requires_response:
        return ""

    subject, body = _lowered(email)
    name = email.sender.name

    if _contains_any(subject, "timeline", "schedule"):
        return _reply(
            name,
            "Thanks for checking in on the project timeline. "
            "I'll have the updated schedule to you by end of day tomorrow.",
        )
    if "reminder" in subject and "timesheet" in subject:
        return _reply(
            name,
            "Thank you for the reminder. I've submitted my timesheet for this period.",
        )
    if _contains_any(subject, "feedback", "review"):
        return _reply(
            name,
            "Thank you for sharing the feedback. I'll review the materials and get back "
            "to you with any questions or revisions by the end of the week.",
        )
    if _contains_any(subject, "invoice", "payment"):
        return _reply(
            name,
            "I'll check on the payment status and get back to you with an update shortly.",
        )
    if _contains_any(subject, "interview", "meeting"):
        return _reply(
            name,
            "Thank you for the invitation. I'm available for the proposed time slots. "
            "Please send a calendar invite for your preferred time.",
        )
    if "question" in body or "?" in body:
        return _reply(
            name,
            "Thank you for your questions. I'll gather the information you requested "
            "and provide a detailed response by tomorrow.",
        )
    return _reply(
        name,
        "Thank you for your email. I'll review this and get back to you soon.",
    )


def improve_draft(draft_text: str, feedback: str, email: Email) -> str:
    # Placeholder for a generative rewrite: annotate instead of rewriting.
    return f"{draft_text}\n\n[Note: {feedback}]"


def ask_for_clarification(email: Email, question: str) -> str:
    return _reply(
        email.sender.name,
        "Thank you for your email. I need some additional information to provide "
        f"a complete response: {question}\n\nCould you please clarify this point?",
    )


# ============================================================
# Backend object used by the session controller
# ============================================================

class Drafter(Protocol):
    def summarize(self, email: Email) -> str: ...

    def draft_reply(self, email: Email) -> str: ...

    def improve(self, draft_text: str, feedback: str, email: Email) -> str: ...

    def clarify(self, email: Email, question: str) -> str: ...


class PatternDrafter:
    """Keyword-rule backend; swap in a model-backed Drafter later."""

    name = "Pattern Matching"

    def summarize(self, email: Email) -> str:
        return summarize(email)

    def draft_reply(self, email: Email) -> str:
        return draft_reply(email)

    def improve(self, draft_text: str, feedback: str, email: Email) -> str:
        return improve_draft(draft_text, feedback, email)

    def clarify(self, email: Email, question: str) -> str:
        return ask_for_clarification(email, question)


# ============================================================
# Per-email processing with placeholders on failure
# ============================================================

def run_step(email: Email, step: str, fn, *args) -> str:
    """Call a drafter method, converting any failure into ProcessingError."""
    try:
        return fn(*args)
    except Exception as e:
        raise ProcessingError(email.id, f"{step} failed: {e}") from e


def summarize_one(
    drafter: Drafter, email: Email, errors: Optional[List[ProcessingError]] = None
) -> str:
    try:
        return run_step(email, "summary", drafter.summarize, email)
    except ProcessingError as e:
        logger.error("Failed to summarize email %s: %s", email.id, e)
        if errors is not None:
            errors.append(e)
        return f"Error summarizing email: {email.subject}"


def draft_one(
    drafter: Drafter, email: Email, errors: Optional[List[ProcessingError]] = None
) -> Draft:
    """Caller guarantees email.requires_response."""
    try:
        content = run_step(email, "draft", drafter.draft_reply, email)
    except ProcessingError as e:
        logger.error("Failed to generate draft for email %s: %s", email.id, e)
        if errors is not None:
            errors.append(e)
        content = f"Error generating draft for: {email.subject}"
    return Draft(email_id=email.id, content=content)


def summarize_batch(
    drafter: Drafter, emails: List[Email], errors: Optional[List[ProcessingError]] = None
) -> Dict[str, str]:
    return {e.id: summarize_one(drafter, e, errors) for e in emails}


def generate_drafts(
    drafter: Drafter, emails: List[Email], errors: Optional[List[ProcessingError]] = None
) -> List[Draft]:
    """One pending Draft per email that requires a response, in batch order."""
    return [draft_one(drafter, e, errors) for e in emails if e.requires_response]
