import threading
import time

import pytest

from ncframe.session import Session, SessionState
from ncframe.constants import DEFAULT_HELLO, DEFAULT_TIMEOUT
from ncframe.error import (
    SessionBusy,
    SessionClosedException,
    SessionStateError,
    TimedOut,
    TransportReadFailed,
    TransportWriteFailed,
)

from common import MockSock, SERVER_HELLO, RPC_REPLY_OK, framed


def ready_session(timeout=1, recvs=()):
    s = MockSock([framed(SERVER_HELLO)] + list(recvs))
    session = Session(s, hostname="router1", timeout=timeout)
    session.send_hello()
    s.sent = []
    return (s, session)


def test_defaults():
    session = Session(MockSock())
    assert session.timeout == DEFAULT_TIMEOUT == 30
    assert session.state is SessionState.CONNECTED
    assert session.server_hello is None


def test_hello_is_write_then_read():
    s = MockSock([framed(SERVER_HELLO)])
    with Session(s, hostname="router1") as session:
        assert session.send_hello() == SERVER_HELLO
        assert s.sent == [(DEFAULT_HELLO + "]]>]]>").encode("utf-8")]
        assert session.server_hello == SERVER_HELLO
        assert session.state is SessionState.READY
    assert s.closed


def test_hello_advertises_fixed_capabilities():
    for cap in (
        "writable-running",
        "rollback-on-error",
        "validate",
        "confirmed-commit",
        "url",
        "base:1.0",
        "power-control",
        "candidate",
        "xpath",
        "startup",
        "interleave",
    ):
        assert cap in DEFAULT_HELLO


def test_rpc_envelope_on_the_wire():
    (s, session) = ready_session(recvs=[framed(RPC_REPLY_OK)])
    assert session.send_rpc("<get/>") == RPC_REPLY_OK
    assert s.sent == [b"<rpc><get/></rpc>]]>]]>"]
    assert session.state is SessionState.READY


def test_rpc_exchange_loop():
    (s, session) = ready_session(
        recvs=[
            framed("<rpc-reply>1</rpc-reply>\n"),
            framed("<rpc-reply>2</rpc-reply>\n"),
        ]
    )
    assert session.send_rpc("<a/>") == "<rpc-reply>1</rpc-reply>\n"
    assert session.send_rpc("<b/>") == "<rpc-reply>2</rpc-reply>\n"
    assert s.sent == [b"<rpc><a/></rpc>]]>]]>", b"<rpc><b/></rpc>]]>]]>"]


def test_rpc_before_hello():
    s = MockSock()
    session = Session(s)
    with pytest.raises(SessionStateError):
        session.send_rpc("<get/>")
    assert s.sent == []


def test_hello_twice():
    (_, session) = ready_session()
    with pytest.raises(SessionStateError):
        session.send_hello()


def test_timeout_scenario_short_timeout():
    s = MockSock()
    session = Session(s, timeout=0.2)
    s.feed_later(0.5, framed(SERVER_HELLO))
    start = time.monotonic()
    with pytest.raises(TimedOut):
        session.send_hello()
    assert time.monotonic() - start < 0.2 + 0.5
    assert session.closed
    assert s.closed


def test_timeout_scenario_long_timeout():
    (s, session) = ready_session(timeout=1.0)
    s.feed_later(0.5, framed("<rpc-reply/>\n"))
    assert session.send_rpc("<get/>") == "<rpc-reply/>\n"
    assert not session.closed


def test_session_unusable_after_timeout():
    (s, session) = ready_session(timeout=0.1)
    with pytest.raises(TimedOut):
        session.send_rpc("<get/>")
    with pytest.raises(SessionClosedException):
        session.send_rpc("<get/>")
    assert s.sent == [b"<rpc><get/></rpc>]]>]]>"]


def test_write_failure_closes_session():
    (s, session) = ready_session()
    s.send_error = OSError("broken pipe")
    with pytest.raises(TransportWriteFailed):
        session.send_rpc("<get/>")
    assert session.closed
    assert s.closed


def test_read_failure_closes_session():
    (s, session) = ready_session(recvs=[OSError("connection reset")])
    with pytest.raises(TransportReadFailed):
        session.send_rpc("<get/>")
    assert session.closed


def test_second_request_while_outstanding():
    (s, session) = ready_session(timeout=5)
    results = []
    t = threading.Thread(target=lambda: results.append(session.send_rpc("<a/>")))
    t.start()

    deadline = time.monotonic() + 2
    while session.state is not SessionState.AWAITING_REPLY:
        assert time.monotonic() < deadline
        time.sleep(0.01)

    with pytest.raises(SessionBusy):
        session.send_rpc("<b/>")

    s.recvs.put(framed(RPC_REPLY_OK))
    t.join(5)
    assert results == [RPC_REPLY_OK]
    assert s.sent == [b"<rpc><a/></rpc>]]>]]>"]


def test_raw_read_write_while_outstanding():
    (s, session) = ready_session(timeout=5)
    results = []
    t = threading.Thread(target=lambda: results.append(session.send_rpc("<a/>")))
    t.start()

    deadline = time.monotonic() + 2
    while session.state is not SessionState.AWAITING_REPLY:
        assert time.monotonic() < deadline
        time.sleep(0.01)

    readers = [x for x in threading.enumerate() if x.name == "ncframe-reader"]
    with pytest.raises(SessionBusy):
        session.read()
    with pytest.raises(SessionBusy):
        session.write("<interleaved/>")
    assert [x for x in threading.enumerate() if x.name == "ncframe-reader"] == readers

    s.recvs.put(framed(RPC_REPLY_OK))
    t.join(5)
    assert results == [RPC_REPLY_OK]
    assert s.sent == [b"<rpc><a/></rpc>]]>]]>"]


def test_low_level_write_read():
    s = MockSock([framed("<anything/>\n")])
    session = Session(s)
    session.write("<anything/>")
    assert s.sent == [b"<anything/>]]>]]>"]
    assert session.read() == "<anything/>\n"


def test_close():
    s = MockSock()
    session = Session(s)
    session.close()
    assert s.closed
    assert session.state is SessionState.CLOSED
    session.close()
    with pytest.raises(SessionClosedException):
        session.send_hello()
    with pytest.raises(SessionClosedException):
        session.write("<get/>")
