import asyncio
import json
import traceback

import pytest

from debugpage.failure import Failure, Throw, throw
from debugpage.interceptor import render, wrap, wrap_async
from debugpage.settings import Settings

PACKAGE = __name__.partition(".")[0]
INTERCEPTOR = "debugpage.interceptor"


class FakeConn:
    def __init__(self, sent=False):
        self.sent = sent
        self.responses = []
        self.method = "GET"
        self.path = "/boom"
        self.polls = 0

    def already_sent(self):
        self.polls += 1
        return self.sent

    def send(self, status, body):
        self.responses.append((status, body.decode("utf-8")))
        self.sent = True


class AsyncConn(FakeConn):
    async def send(self, status, body):
        FakeConn.send(self, status, body)


class BrokenConn(FakeConn):
    def send(self, status, body):
        raise OSError("broken pipe")


class InterruptedConn(FakeConn):
    def send(self, status, body):
        raise KeyboardInterrupt


class SlowConn(FakeConn):
    def __init__(self):
        super().__init__()
        self.sending = asyncio.Event()

    async def send(self, status, body):
        self.sending.set()
        await asyncio.sleep(10)


class Oops(Exception):
    pass


def boom():
    raise Oops("oops")


def _log_lines(capsys):
    return [json.loads(line) for line in capsys.readouterr().out.splitlines() if line.strip()]


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# 1. wrap
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class TestWrap:
    def test_success_returns_result_untouched(self):
        conn = FakeConn()
        result = object()
        assert wrap(conn, Settings(), lambda: result) is result
        assert conn.responses == []
        assert conn.polls == 0

    def test_error_renders_once_and_reraises_same_exception(self):
        conn = FakeConn()
        original = Oops("oops")

        def work():
            raise original

        with pytest.raises(Oops) as exc_info:
            wrap(conn, Settings(target_package=PACKAGE), work)

        assert exc_info.value is original
        assert original.__context__ is None
        assert original.__cause__ is None
        assert len(conn.responses) == 1
        status, body = conn.responses[0]
        assert status == 500
        assert f"{__name__}.Oops" in body
        assert "oops" in body
        assert "GET /boom" in body
        assert 'class="frame app"' in body

    def test_traceback_is_preserved(self):
        with pytest.raises(Oops) as exc_info:
            wrap(FakeConn(), Settings(), boom)
        names = [f.name for f in traceback.extract_tb(exc_info.value.__traceback__)]
        assert names[-1] == "boom"
        assert "wrap" in names

    def test_interceptor_frames_are_not_rendered(self):
        conn = FakeConn()
        with pytest.raises(Oops):
            wrap(conn, Settings(), boom)
        _, body = conn.responses[0]
        assert f"{__name__}.boom/0" in body
        assert INTERCEPTOR not in body
        assert "debugpage/interceptor.py" not in body

    def test_already_sent_skips_page(self, capsys):
        conn = FakeConn(sent=True)
        with pytest.raises(Oops):
            wrap(conn, Settings(), boom)
        assert conn.responses == []
        assert conn.polls == 1
        assert _log_lines(capsys) == [{"msg": "debug_page_skipped", "failure_kind": "error"}]

    def test_already_sent_stays_visible_to_outer_wrap(self):
        conn = FakeConn()
        with pytest.raises(Oops):
            wrap(conn, Settings(), lambda: wrap(conn, Settings(), boom))
        assert len(conn.responses) == 1
        assert conn.polls == 2

    def test_throw(self):
        conn = FakeConn()
        with pytest.raises(Throw) as exc_info:
            wrap(conn, Settings(), lambda: throw("boom"))
        assert exc_info.value.value == "boom"
        status, body = conn.responses[0]
        assert status == 500
        assert "unhandled throw" in body
        assert "'boom'" in body

    def test_exit(self):
        conn = FakeConn()

        def work():
            raise SystemExit(3)

        with pytest.raises(SystemExit) as exc_info:
            wrap(conn, Settings(), work)
        assert exc_info.value.code == 3
        status, body = conn.responses[0]
        assert status == 500
        assert "unhandled exit" in body
        assert "exit status 3" in body

    def test_send_failure_does_not_mask_original(self, capsys):
        original = Oops("oops")

        def work():
            raise original

        with pytest.raises(Oops) as exc_info:
            wrap(BrokenConn(), Settings(), work)
        assert exc_info.value is original
        assert original.__context__ is None
        [entry] = _log_lines(capsys)
        assert entry["msg"] == "debug_page_render_failed"
        assert entry["error_type"] == "OSError"
        assert entry["error"] == "broken pipe"

    def test_status_lookup_failure_does_not_mask_original(self):
        def status_for(exc):
            raise KeyError("status")

        conn = FakeConn()
        with pytest.raises(Oops):
            wrap(conn, Settings(), boom, status_for=status_for)
        assert conn.responses == []

    def test_interrupt_while_sending_does_not_mask_original(self, capsys):
        with pytest.raises(Oops):
            wrap(InterruptedConn(), Settings(), boom)
        [entry] = _log_lines(capsys)
        assert entry["msg"] == "debug_page_render_failed"
        assert entry["error_type"] == "KeyboardInterrupt"

    def test_throw_from_status_lookup_does_not_mask_original(self):
        def status_for(exc):
            throw("no status")

        with pytest.raises(Oops):
            wrap(FakeConn(), Settings(), boom, status_for=status_for)

    def test_async_sink_rejected_in_sync_wrap(self, capsys):
        conn = AsyncConn()
        with pytest.raises(Oops):
            wrap(conn, Settings(), boom)
        assert conn.responses == []
        [entry] = _log_lines(capsys)
        assert entry["error_type"] == "TypeError"

    def test_editor_from_environment(self, monkeypatch):
        monkeypatch.setenv("DEBUGPAGE_EDITOR", "editor://open?file=__FILE__&line=__LINE__")
        conn = FakeConn()
        with pytest.raises(Oops):
            wrap(conn, None, boom)
        _, body = conn.responses[0]
        assert 'href="editor://open?file=' in body
        assert "&amp;line=" in body

    def test_no_editor_link_by_default(self, monkeypatch):
        monkeypatch.delenv("DEBUGPAGE_EDITOR", raising=False)
        conn = FakeConn()
        with pytest.raises(Oops):
            wrap(conn, None, boom)
        _, body = conn.responses[0]
        assert "href=" not in body


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# 2. wrap_async
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class TestWrapAsync:
    def test_success(self):
        async def work():
            return "ok"

        conn = AsyncConn()
        assert asyncio.run(wrap_async(conn, Settings(), work)) == "ok"
        assert conn.responses == []

    def test_async_send_is_awaited(self):
        async def work():
            boom()

        conn = AsyncConn()
        with pytest.raises(Oops):
            asyncio.run(wrap_async(conn, Settings(), work))
        assert len(conn.responses) == 1
        assert INTERCEPTOR not in conn.responses[0][1]

    def test_sync_send_accepted(self):
        async def work():
            boom()

        conn = FakeConn()
        with pytest.raises(Oops):
            asyncio.run(wrap_async(conn, Settings(), work))
        assert len(conn.responses) == 1

    def test_cancel_while_sending_keeps_original(self, capsys):
        async def work():
            boom()

        async def scenario():
            conn = SlowConn()
            task = asyncio.create_task(wrap_async(conn, Settings(), work))
            await conn.sending.wait()
            task.cancel()
            with pytest.raises(Oops):
                await task

        asyncio.run(scenario())
        [entry] = _log_lines(capsys)
        assert entry["error_type"] == "CancelledError"

    def test_already_sent(self):
        async def work():
            boom()

        conn = AsyncConn(sent=True)
        with pytest.raises(Oops):
            asyncio.run(wrap_async(conn, Settings(), work))
        assert conn.responses == []


def test_render_sends_page():
    try:
        boom()
    except Oops as e:
        failure = Failure.capture(e)
    conn = FakeConn()
    render(conn, failure, Settings())
    status, body = conn.responses[0]
    assert status == 500
    assert "test_render_sends_page/0" in body
