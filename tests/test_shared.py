import io
import sys

from hashtab.shared import printf_err, set_debug_trace, trace


def test_printf_err_follows_stderr(monkeypatch):
    buf = io.StringIO()
    monkeypatch.setattr(sys, "stderr", buf)
    printf_err("hello {0:s}\n", "world")
    assert buf.getvalue() == "hello world\n"


def test_trace_only_when_enabled(monkeypatch):
    buf = io.StringIO()
    monkeypatch.setattr(sys, "stderr", buf)

    trace("hidden\n")
    set_debug_trace(True)
    try:
        trace("shown {0:d}\n", 1)
    finally:
        set_debug_trace(False)

    assert buf.getvalue() == "[hashtab] shown 1\n"
