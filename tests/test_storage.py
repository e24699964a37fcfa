import json

import pytest

from inbox_triage.email_source import JsonFileEmailSource
from inbox_triage.errors import LoadError, StoreWriteError
from inbox_triage.storage import InboxStore

from conftest import make_record, read_inbox, write_inbox


def _store_for(path):
    s = InboxStore(JsonFileEmailSource(str(path)))
    s.load_all()
    return s


def test_load_keeps_file_order_and_fields(store):
    emails = store.unread_emails()
    assert [e.id for e in emails] == [f"e{n:02d}" for n in range(1, 13)]
    first = emails[0]
    assert first.sender.name == "Sender 1"
    assert first.sender.email == "alice@example.com"
    assert first.requires_response is True
    assert first.date.year == 2024 and first.date.tzinfo is not None


@pytest.mark.parametrize("offset", [0, 1, 5, 9, 10, 11, 12, 13, 40])
def test_batch_length(store, offset):
    expected = min(10, max(0, store.unread_count() - offset))
    assert len(store.batch(10, offset)) == expected


def test_batch_is_a_slice_of_unread(store):
    store.mark_read({"e02", "e04"})
    assert [e.id for e in store.batch(3, 1)] == ["e03", "e05", "e06"]


def test_batch_rejects_bad_arguments(store):
    with pytest.raises(ValueError):
        store.batch(0, 0)
    with pytest.raises(ValueError):
        store.batch(10, -1)


def test_mark_read_is_persisted_and_idempotent(store, inbox_file):
    before = store.unread_count()

    assert store.mark_read({"e03"}) == 1
    assert store.get_email("e03").unread is False
    assert store.unread_count() == before - 1

    assert store.mark_read({"e03"}) == 0
    assert store.unread_count() == before - 1

    on_disk = {r["id"]: r["unread"] for r in read_inbox(inbox_file)}
    assert on_disk["e03"] is False
    assert on_disk["e04"] is True


def test_mark_read_accepts_a_single_id(store):
    assert store.mark_read("e01") == 1
    assert store.get_email("e01").unread is False


def test_optional_flags_default_when_absent(tmp_path):
    record = {k: v for k, v in make_record("a").items() if k not in ("unread", "requiresResponse")}
    s = _store_for(write_inbox(tmp_path / "inbox.json", [record]))
    email = s.get_email("a")
    assert (email.unread, email.requires_response) == (True, False)


def test_mark_read_ignores_unknown_ids(store):
    assert store.mark_read(["nope"]) == 0
    assert store.unread_count() == 12


def test_reset_marks_everything_unread(tmp_path):
    path = write_inbox(
        tmp_path / "inbox.json",
        [make_record("a", unread=False), make_record("b", unread=False), make_record("c")],
    )
    s = _store_for(path)
    assert s.unread_count() == 1

    s.reset()

    assert s.unread_count() == 3
    assert all(r["unread"] for r in read_inbox(path))


def test_counts_and_lookups(store):
    assert store.total_count() == 12
    assert len(store.emails_requiring_response()) == 5
    assert store.get_email("missing") is None


def test_save_round_trips_unicode(tmp_path):
    path = write_inbox(tmp_path / "inbox.json", [make_record("a", subject="Café ☕ plans")])
    s = _store_for(path)
    s.mark_read({"a"})

    raw = path.read_text(encoding="utf-8")
    assert "Café ☕ plans" in raw
    assert _store_for(path).get_email("a").subject == "Café ☕ plans"


# ---------------------------
# Load failures
# ---------------------------

def test_missing_file_raises_load_error(tmp_path):
    with pytest.raises(LoadError, match="not found"):
        _store_for(tmp_path / "absent.json")


def test_invalid_json_raises_load_error(tmp_path):
    path = tmp_path / "inbox.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(LoadError, match="not valid JSON"):
        _store_for(path)


def test_missing_emails_list_raises_load_error(tmp_path):
    path = tmp_path / "inbox.json"
    path.write_text(json.dumps({"messages": []}), encoding="utf-8")
    with pytest.raises(LoadError, match="'emails'"):
        _store_for(path)


@pytest.mark.parametrize(
    "broken",
    [
        {k: v for k, v in make_record("x").items() if k != "subject"},
        {**make_record("x"), "date": "yesterday"},
        {**make_record("x"), "from": "alice@example.com"},
        {**make_record("x"), "subject": None},
        {**make_record("x"), "body": 42},
        {**make_record("x"), "id": 7},
        {**make_record("x"), "date": None},
        {**make_record("x"), "from": {"name": None, "email": "alice@example.com"}},
        {**make_record("x"), "requiresResponse": "false"},
        {**make_record("x"), "unread": "false"},
    ],
)
def test_malformed_record_raises_load_error(tmp_path, broken):
    path = write_inbox(tmp_path / "inbox.json", [make_record("ok"), broken])
    with pytest.raises(LoadError, match="position 1"):
        _store_for(path)


def test_duplicate_ids_raise_load_error(tmp_path):
    path = write_inbox(tmp_path / "inbox.json", [make_record("a"), make_record("a")])
    with pytest.raises(LoadError, match="Duplicate"):
        _store_for(path)


# ---------------------------
# Write failures
# ---------------------------

class ReadOnlySource:
    def __init__(self, records):
        self.records = records

    def get_emails(self):
        return self.records

    def save_emails(self, emails):
        raise StoreWriteError("disk full")


def test_failed_write_leaves_flags_untouched():
    s = InboxStore(ReadOnlySource([make_record("a"), make_record("b")]))
    s.load_all()

    with pytest.raises(StoreWriteError):
        s.mark_read({"a"})

    assert s.get_email("a").unread is True
    assert s.unread_count() == 2


def test_failed_file_write_removes_temp_file(tmp_path):
    path = write_inbox(tmp_path / "inbox.json", [make_record("a")])
    source = JsonFileEmailSource(str(path))
    s = InboxStore(source)
    s.load_all()
    # a directory at the target path makes os.replace fail after the temp file is written
    source.path = str(tmp_path / "target")
    (tmp_path / "target").mkdir()

    with pytest.raises(StoreWriteError):
        s.mark_read({"a"})

    assert not (tmp_path / "target.tmp").exists()
    assert s.get_email("a").unread is True


def test_default_source_works_outside_project_dir(monkeypatch, tmp_path):
    monkeypatch.delenv("INBOX_DATA_PATH", raising=False)
    monkeypatch.chdir(tmp_path)
    s = InboxStore()
    s.load_all()
    assert s.total_count() == 15


def test_default_source_reads_inbox_data_path(monkeypatch, inbox_file):
    monkeypatch.setenv("INBOX_DATA_PATH", str(inbox_file))
    s = InboxStore()
    s.load_all()
    assert s.source.path == str(inbox_file)
    assert s.total_count() == 12
