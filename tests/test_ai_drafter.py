from datetime import datetime, timezone

import pytest

from inbox_triage import ai_drafter
from inbox_triage.errors import ProcessingError
from inbox_triage.models import DraftStatus, Email, Sender


def make_email(subject="Hello", body="Hi there.", requires_response=True, email_id="m1"):
    return Email(
        id=email_id,
        sender=Sender(name="Sarah Chen", email="sarah@example.com"),
        subject=subject,
        date=datetime(2024, 1, 15, 9, 30, tzinfo=timezone.utc),
        body=body,
        requires_response=requires_response,
    )


@pytest.mark.parametrize(
    "subject, body, expected",
    [
        ("Project Timeline", "", "updated project timeline"),
        ("Delivery schedule", "", "updated project timeline"),
        ("Weekly Newsletter", "", "Newsletter/digest email from Sarah Chen"),
        ("Morning digest", "", "Newsletter/digest"),
        ("Friendly reminder", "", "sending a reminder"),
        ("Heads up", "just a reminder that docs are due", "sending a reminder"),
        ("Feedback on draft", "", "sharing feedback"),
        ("Code review", "", "sharing feedback"),
        ("Invoice 42", "", "billing/payment"),
        ("Payment received", "", "billing/payment"),
        ("Team meeting", "", "meeting/interview"),
        ("Interview slots", "", "meeting/interview"),
        ("A question", "", "has questions"),
        ("Hello", "are you free?", "has questions"),
        ("Lunch", "See you there.", 'sent a message regarding "Lunch"'),
    ],
)
def test_summarize_categories(subject, body, expected):
    summary = ai_drafter.summarize(make_email(subject, body))
    assert expected in summary
    assert "Sarah Chen" in summary


def test_summarize_first_matching_rule_wins():
    # "schedule" outranks "invoice", "reminder" outranks "meeting"
    assert "timeline" in ai_drafter.summarize(make_email("Invoice schedule"))
    assert "reminder" in ai_drafter.summarize(make_email("Meeting reminder"))


def test_summarize_only_checks_subject_for_most_rules():
    assert "regarding" in ai_drafter.summarize(make_email("Hello", "the invoice is attached."))


@pytest.mark.parametrize(
    "subject, body, expected",
    [
        ("Timeline check", "", "updated schedule to you by end of day tomorrow"),
        ("Reminder: timesheet due", "", "I've submitted my timesheet"),
        ("Feedback please", "", "Thank you for sharing the feedback"),
        ("Invoice overdue", "", "check on the payment status"),
        ("Interview next week", "", "Please send a calendar invite"),
        ("Hello", "Do you have a question for me", "Thank you for your questions"),
        ("Hello", "Can we talk?", "Thank you for your questions"),
        ("Hello", "See you soon.", "I'll review this and get back to you soon"),
    ],
)
def test_draft_reply_templates(subject, body, expected):
    draft = ai_drafter.draft_reply(make_email(subject, body))
    assert draft.startswith("Hi Sarah Chen,\n\n")
    assert expected in draft
    assert draft.endswith("Best regards")


def test_reminder_without_timesheet_gets_generic_reply():
    draft = ai_drafter.draft_reply(make_email("Reminder: standup notes", "See you soon."))
    assert "I'll review this and get back to you soon" in draft


def test_draft_reply_is_empty_iff_no_response_needed():
    for subject in ("Timeline", "Invoice", "Newsletter", "Hello"):
        assert ai_drafter.draft_reply(make_email(subject, requires_response=False)) == ""
        assert ai_drafter.draft_reply(make_email(subject, requires_response=True)) != ""


def test_generation_is_deterministic():
    email = make_email("Feedback on the deck", "Any questions?")
    assert ai_drafter.summarize(email) == ai_drafter.summarize(email)
    assert ai_drafter.draft_reply(email) == ai_drafter.draft_reply(email)


def test_improve_draft_appends_feedback_note():
    improved = ai_drafter.improve_draft("Hi,\n\nThanks.", "make it warmer", make_email())
    assert improved == "Hi,\n\nThanks.\n\n[Note: make it warmer]"


def test_ask_for_clarification_mentions_question():
    text = ai_drafter.ask_for_clarification(make_email(), "which invoice do you mean?")
    assert text.startswith("Hi Sarah Chen,")
    assert "which invoice do you mean?" in text
    assert "Could you please clarify this point?" in text


def test_pattern_drafter_delegates_to_rules():
    drafter = ai_drafter.PatternDrafter()
    email = make_email("Invoice 7")
    assert drafter.summarize(email) == ai_drafter.summarize(email)
    assert drafter.draft_reply(email) == ai_drafter.draft_reply(email)
    assert drafter.improve("x", "y", email) == "x\n\n[Note: y]"


class BrokenDrafter(ai_drafter.PatternDrafter):
    def summarize(self, email):
        if email.id == "bad":
            raise RuntimeError("model timeout")
        return super().summarize(email)

    def draft_reply(self, email):
        if email.id == "bad":
            raise RuntimeError("model timeout")
        return super().draft_reply(email)


def test_batch_helpers_substitute_placeholders_and_continue():
    emails = [
        make_email("Invoice 1", email_id="ok"),
        make_email("Broken one", email_id="bad"),
        make_email("Newsletter", email_id="info", requires_response=False),
    ]
    errors = []

    summaries = ai_drafter.summarize_batch(BrokenDrafter(), emails, errors)
    drafts = ai_drafter.generate_drafts(BrokenDrafter(), emails, errors)

    assert summaries["bad"] == "Error summarizing email: Broken one"
    assert "billing/payment" in summaries["ok"]
    assert [d.email_id for d in drafts] == ["ok", "bad"]
    assert drafts[1].content == "Error generating draft for: Broken one"
    assert all(d.status is DraftStatus.PENDING for d in drafts)
    assert len(errors) == 2
    assert all(isinstance(e, ProcessingError) and e.email_id == "bad" for e in errors)


def test_run_step_wraps_failures():
    def boom(*args):
        raise ValueError("nope")

    with pytest.raises(ProcessingError) as info:
        ai_drafter.run_step(make_email(email_id="m9"), "improve", boom)
    assert info.value.email_id == "m9"
    assert isinstance(info.value.__cause__, ValueError)
