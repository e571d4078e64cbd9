import json
import signal

import pytest

from notice_tracker import main
from notice_tracker.models import NoticeCandidate
from notice_tracker.store import NoticeStore


def test_shutdown_hook_flushes_and_exits(tmp_path, monkeypatch):
    handlers = {}
    monkeypatch.setattr(main.signal, "signal", lambda signum, handler: handlers.update({signum: handler}))

    path = tmp_path / "notices_data.json"
    store = NoticeStore(path)
    store.append_if_new([NoticeCandidate(title="A", link="https://x/a", timestamp="t")])
    path.unlink()

    main.install_shutdown_hook(store, timeout=2)

    assert set(handlers) == {signal.SIGINT, signal.SIGTERM}
    with pytest.raises(SystemExit) as excinfo:
        handlers[signal.SIGTERM](signal.SIGTERM, None)

    assert excinfo.value.code == 0
    assert json.loads(path.read_text(encoding="utf-8"))["notices"][0]["title"] == "A"


def test_main_returns_error_on_bad_config(monkeypatch):
    def broken_settings():
        raise ValueError("PORT must be an integer")

    monkeypatch.setattr(main, "get_settings", broken_settings)

    assert main.main() == 1
