import json

import pytest

from inbox_triage.email_source import JsonFileEmailSource
from inbox_triage.storage import InboxStore


def make_record(
    email_id,
    subject="Hello",
    body="Just saying hi.",
    requires_response=False,
    unread=True,
    name="Alice Smith",
    address="alice@example.com",
    date="2024-01-15T09:30:00Z",
):
    return {
        "id": email_id,
        "from": {"name": name, "email": address},
        "subject": subject,
        "date": date,
        "body": body,
        "unread": unread,
        "requiresResponse": requires_response,
    }


def write_inbox(path, records):
    path.write_text(json.dumps({"emails": records}), encoding="utf-8")
    return path


def read_inbox(path):
    return json.loads(path.read_text(encoding="utf-8"))["emails"]


def twelve_emails():
    """12 unread emails; e01-e05 need a reply, all inside the first batch of 10."""
    records = []
    for n in range(1, 13):
        records.append(
            make_record(
                f"e{n:02d}",
                subject=f"Meeting follow-up {n}" if n <= 5 else f"FYI update {n}",
                requires_response=n <= 5,
                name=f"Sender {n}",
            )
        )
    return records


@pytest.fixture
def inbox_file(tmp_path):
    return write_inbox(tmp_path / "inbox.json", twelve_emails())


@pytest.fixture
def store(inbox_file):
    s = InboxStore(JsonFileEmailSource(str(inbox_file)))
    s.load_all()
    return s
