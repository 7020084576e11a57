from threading import Thread, Event
from concurrent.futures import Future, TimeoutError

from ncframe.log import logger
from ncframe.constants import DELIMITER, DELIMITER_BYTES, RECV_CHUNK_SIZE
from ncframe.error import TransportWriteFailed, TransportReadFailed, TimedOut


def write_message(stream, payload):
    """Frames a message with the end-of-message delimiter and sends it

    The framed message is handed to the stream in a single
    ``sendall`` call; nothing is awaited from the remote side.

    :param stream: Any object with a ``sendall(bytes)`` method

    :param str payload: The message to send (not validated)

    :raises TransportWriteFailed: if the stream raises for any reason

    """
    logger.debug("Sending message: %s", payload)
    data = (payload + DELIMITER).encode("utf-8")
    try:
        stream.sendall(data)
    except Exception as e:
        raise TransportWriteFailed("Failed to write message: {}".format(e)) from e


class FramedReader:
    """Recovers delimiter-framed messages from a byte stream

    The stream is consumed line by line. A line consisting only of the
    delimiter ends a message; every other line, blank lines included,
    belongs to the message body. Bytes following the delimiter line
    are kept for the next :meth:`read`.

    Only one :meth:`read` may be in progress at a time. Once a read has
    timed out the reader is cancelled and refuses further reads.

    :ivar stream: Any object with a ``recv(n)`` method

    """

    def __init__(self, stream):
        self.stream = stream
        self.buf = b""
        self._after_bare_delimiter = False
        self._cancelled = Event()

    @property
    def cancelled(self):
        return self._cancelled.is_set()

    def cancel(self):
        """Stops the scan of any pending read at the next line boundary

        A scan blocked inside ``recv`` only notices the cancellation
        once the stream returns; closing the stream forces that.
        """
        self._cancelled.set()

    def read(self, timeout):
        """Waits for the next complete message

        :param float timeout: Seconds to wait for the delimiter; ``None``
                              waits forever

        :rtype: str

        :raises TimedOut: if the delimiter was not seen within `timeout`
        :raises TransportReadFailed: if the stream failed or ended first

        """
        if self.cancelled:
            raise TransportReadFailed("Reader was cancelled by an earlier timeout")

        f = Future()
        scanner = Thread(target=self._scan, args=(f,), name="ncframe-reader")
        scanner.daemon = True
        scanner.start()

        try:
            msg = f.result(timeout=timeout)
        except TimeoutError:
            # the scanner stops at its next line boundary and its
            # result is dropped
            self.cancel()
            logger.warning("No message delimiter received within %s seconds", timeout)
            raise TimedOut(timeout) from None

        logger.debug("Received message: %s", msg)
        return msg

    def _scan(self, f):
        try:
            f.set_result(self._scan_message())
        except Exception as e:
            f.set_exception(e)

    def _scan_message(self):
        parts = []
        for line in self._lines():
            if line == DELIMITER:
                return "".join(parts)
            parts.append(line + "\n")

    def _lines(self):
        while True:
            if self.cancelled:
                raise TransportReadFailed("Read was cancelled")

            index = self.buf.find(b"\n")
            if index != -1:
                line = self.buf[:index]
                self.buf = self.buf[index + 1 :]
                yield _decode_line(line)
                continue

            # Delimiter not followed by a newline yet; the remote may
            # never send one
            if self.buf.rstrip(b"\r") == DELIMITER_BYTES:
                self.buf = b""
                self._after_bare_delimiter = True
                yield DELIMITER
                continue

            self.buf += self._recv()

    def _recv(self):
        try:
            r = self.stream.recv(RECV_CHUNK_SIZE)
        except Exception as e:
            raise TransportReadFailed(
                "Failed to read from transport: {}".format(e)
            ) from e

        if not r:
            raise TransportReadFailed(
                "Transport closed before the message delimiter was received"
            )

        if self._after_bare_delimiter:
            # line break that terminated the previous delimiter; its
            # "\r" and "\n" may arrive in separate chunks
            if r.startswith(b"\r"):
                r = r[1:]
                if not r:
                    return r
            self._after_bare_delimiter = False
            if r.startswith(b"\n"):
                r = r[1:]
        return r


def _decode_line(line):
    if line.endswith(b"\r"):
        line = line[:-1]
    try:
        return line.decode("utf-8")
    except UnicodeDecodeError as e:
        raise TransportReadFailed(
            "Received data is not valid UTF-8: {}".format(e)
        ) from e
