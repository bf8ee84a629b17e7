from clip_history import EntryKind, make_data_url
from clip_monitor import ClipboardPoller


def contents(store):
    return [it.content for it in store.get_all()]


def test_new_text_is_recorded_once(store, clipboard):
    poller = ClipboardPoller(clipboard, store)
    clipboard.text = "copied"
    poller.poll()
    poller.poll()
    assert contents(store) == ["copied"]


def test_blank_text_is_ignored(store, clipboard):
    poller = ClipboardPoller(clipboard, store)
    clipboard.text = "  \n\t"
    poller.poll()
    assert store.get_all() == []


def test_oversized_text_is_ignored(store, clipboard):
    poller = ClipboardPoller(clipboard, store, max_text_bytes=10)
    clipboard.text = "x" * 11
    poller.poll()
    assert store.get_all() == []


def test_image_change_is_recorded(store, clipboard):
    poller = ClipboardPoller(clipboard, store)
    clipboard.image = make_data_url(b"img-1")
    poller.poll()
    poller.poll()
    clipboard.image = make_data_url(b"img-2")
    poller.poll()
    entries = store.get_all()
    assert [it.kind for it in entries] == [EntryKind.IMAGE, EntryKind.IMAGE]
    assert entries[0].content == make_data_url(b"img-2")


def test_text_and_image_in_one_poll(store, clipboard):
    poller = ClipboardPoller(clipboard, store)
    clipboard.text = "caption"
    clipboard.image = make_data_url(b"img")
    poller.poll()
    assert [it.kind for it in store.get_all()] == [EntryKind.IMAGE, EntryKind.TEXT]


def test_remembered_content_is_not_recorded(store, clipboard):
    poller = ClipboardPoller(clipboard, store)
    clipboard.text = "older"
    poller.poll()
    clipboard.text = "newer"
    poller.poll()

    poller.remember("older", EntryKind.TEXT)
    clipboard.text = "older"
    poller.poll()
    assert contents(store) == ["newer", "older"]


def test_unavailable_clipboard_is_skipped(store, clipboard, caplog):
    poller = ClipboardPoller(clipboard, store)
    clipboard.unavailable = True
    poller.poll()
    poller.poll()
    assert store.get_all() == []
    warnings = [r for r in caplog.records if "unavailable" in r.getMessage()]
    assert len(warnings) == 2  # once for text, once for image


def test_persistence_failure_does_not_stop_polling(store, clipboard, persistence):
    poller = ClipboardPoller(clipboard, store)
    persistence.fail_saves = True
    clipboard.text = "first"
    poller.poll()
    assert store.get_all() == []

    persistence.fail_saves = False
    clipboard.text = "second"
    poller.poll()
    assert contents(store) == ["second"]
