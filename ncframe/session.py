from contextlib import contextmanager
from enum import Enum
from threading import Lock

from ncframe.framing import FramedReader, write_message
from ncframe.log import logger
from ncframe.constants import DEFAULT_HELLO, DEFAULT_TIMEOUT
from ncframe.rpc import make_rpc
from ncframe.error import (
    SessionBusy,
    SessionClosedException,
    SessionStateError,
    TimedOut,
    TransportReadFailed,
    TransportWriteFailed,
)


class SessionState(Enum):
    CONNECTED = "connected"
    HELLO_SENT = "hello-sent"
    READY = "ready"
    AWAITING_REPLY = "awaiting-reply"
    CLOSED = "closed"


class Session:
    """A session with a NETCONF server

    This class is a context manager, and should always be either used
    with a ``with`` statement or the :meth:`close` method should be
    called manually when the object is no longer required.

    Requests are strictly serial: each :meth:`send_rpc` writes one
    ``<rpc>`` and waits for the next message from the server. Starting
    an operation while another one is outstanding raises
    :class:`ncframe.error.SessionBusy`.

    Any transport failure or timeout closes the session. A closed
    session can't be reused; connect again instead.

    :ivar sock: The transport stream; anything providing ``sendall``,
                ``recv`` and ``close``

    :ivar str hostname: The remote endpoint, used for logging

    :ivar float timeout: Seconds to wait for each reply

    :ivar state: The current :class:`SessionState`

    :ivar str server_hello: The ``<hello>`` received from the server,
                            once :meth:`send_hello` succeeded

    """

    def __init__(self, sock, hostname=None, timeout=DEFAULT_TIMEOUT):
        self.sock = sock
        self.hostname = hostname
        self.timeout = timeout
        self.state = SessionState.CONNECTED
        self.client_hello = DEFAULT_HELLO
        self.server_hello = None
        self.reader = FramedReader(sock)
        self._lock = Lock()

    def __enter__(self):
        return self

    def __exit__(self, _, __, ___):
        self.close()

    @property
    def closed(self):
        return self.state is SessionState.CLOSED

    def close(self):
        """Closes the underlying transport; a no-op on a closed session"""
        if self.closed:
            return
        self.state = SessionState.CLOSED
        self._close_sock()

    def _close_sock(self):
        self.reader.cancel()
        try:
            self.sock.close()
        except Exception as e:
            logger.debug(
                "Ignoring error while closing session to %s: %s", self.hostname, e
            )
        logger.info("Session to %s closed", self.hostname)

    def _abort(self, cause):
        if self.closed:
            return
        logger.warning("Closing session to %s after failure: %s", self.hostname, cause)
        self.state = SessionState.CLOSED
        self._close_sock()

    def write(self, payload):
        """Sends a framed message to the server

        :param str payload: The message to send, without delimiter

        :raises TransportWriteFailed: the session is closed afterwards
        :raises SessionBusy: if another operation is outstanding
        """
        with self._exclusive():
            self._check_idle()
            self._write(payload)

    def read(self):
        """Waits up to :attr:`timeout` seconds for the next message

        :rtype: str

        :raises TimedOut: the session is closed afterwards
        :raises TransportReadFailed: the session is closed afterwards
        :raises SessionBusy: if another operation is outstanding
        """
        with self._exclusive():
            self._check_idle()
            return self._read()

    def _write(self, payload):
        try:
            write_message(self.sock, payload)
        except TransportWriteFailed as e:
            self._abort(e)
            raise

    def _read(self):
        try:
            return self.reader.read(self.timeout)
        except (TimedOut, TransportReadFailed) as e:
            self._abort(e)
            raise

    def send_hello(self):
        """Sends the client ``<hello>`` and waits for the server's

        :return: The server ``<hello>`` exactly as received
        :rtype: str
        """
        with self._exclusive():
            self._check_state(SessionState.CONNECTED)
            self._write(self.client_hello)
            self.state = SessionState.HELLO_SENT
            self.server_hello = self._read()
            self.state = SessionState.READY
            logger.info("Handshake with %s complete", self.hostname)
            return self.server_hello

    def send_rpc(self, body):
        """Sends an RPC to the server and waits for its reply

        :param str body: The operation to send; it should not include
                         an ``<rpc>`` tag (one will be generated for you)

        :return: The reply exactly as received
        :rtype: str
        """
        with self._exclusive():
            self._check_state(SessionState.READY)
            self._write(make_rpc(body))
            self.state = SessionState.AWAITING_REPLY
            reply = self._read()
            self.state = SessionState.READY
            return reply

    @contextmanager
    def _exclusive(self):
        if not self._lock.acquire(blocking=False):
            raise SessionBusy("Another request is outstanding on this session")
        try:
            yield
        finally:
            self._lock.release()

    def _check_open(self):
        if self.closed:
            raise SessionClosedException(
                "Session to {} is closed".format(self.hostname)
            )

    def _check_state(self, expected):
        self._check_open()
        if self.state is not expected:
            raise SessionStateError(
                "Session is {}, expected {}".format(self.state.value, expected.value)
            )

    def _check_idle(self):
        self._check_open()
        if self.state in (SessionState.HELLO_SENT, SessionState.AWAITING_REPLY):
            raise SessionBusy(
                "Session is {}, a reply is still outstanding".format(self.state.value)
            )
