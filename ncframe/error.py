from lxml import etree
from ncframe.constants import NAMESPACES


class NetconfClientException(Exception):
    """Base class for all ``ncframe`` exceptions"""

    pass


class ConnectFailed(NetconfClientException):
    """This exception is raised when a session could not be set up

    :ivar str stage: The step that failed; one of ``dial``,
                     ``authenticate``, ``channel`` or ``subsystem``
    :ivar cause: The underlying exception, if any

    """

    def __init__(self, stage, cause=None):
        self.stage = stage
        self.cause = cause
        if cause is not None:
            msg = "Connection failed during {}: {}".format(stage, cause)
        else:
            msg = "Connection failed during {}".format(stage)
        super(ConnectFailed, self).__init__(msg)


class InvalidPrivateKey(NetconfClientException):
    """This exception is raised if the SSH private key can't be loaded"""

    pass


class TransportWriteFailed(NetconfClientException):
    """This exception is raised when writing a message to the transport fails

    The session is closed afterwards and must be rebuilt.
    """

    pass


class TransportReadFailed(NetconfClientException):
    """This exception is raised when the transport fails, or reaches end
    of stream, before a complete message was received

    The session is closed afterwards and must be rebuilt.
    """

    pass


class TimedOut(NetconfClientException):
    """This exception is raised when no message delimiter was received
    within the session timeout

    :ivar float timeout: The timeout that elapsed, in seconds

    """

    def __init__(self, timeout):
        self.timeout = timeout
        super(TimedOut, self).__init__(
            "Timed out after {} seconds waiting for the NETCONF delimiter".format(
                timeout
            )
        )


class SessionClosedException(NetconfClientException):
    """This exception is raised when a closed or failed session is used"""

    pass


class SessionBusy(NetconfClientException):
    """This exception is raised when an operation is started while another
    one is still outstanding on the same session"""

    pass


class SessionStateError(NetconfClientException):
    """This exception is raised when an operation is not valid in the
    current session state, e.g. an ``<rpc>`` before the ``<hello>``"""

    pass


class RpcError(NetconfClientException):
    """This exception is raised by :class:`ncframe.manager.Manager` for
    an ``<rpc>`` call that returns a corresponding ``<rpc-error>``

    :ivar reply_raw: The raw text that was returned by the server
    :ivar reply_ele: The lxml parsed representation of the reply
    :ivar message: If present, the contents of the ``<error-message>`` tag
    :ivar tag: If present, the contents of the ``<error-tag>`` tag
    :ivar info: If present, the contents of the ``<error-info>`` tag

    """

    def __init__(self, raw, ele):
        self.reply_raw = raw
        self.reply_ele = ele
        self.message = None
        self.tag = None
        self.info = None

        msgs = ele.xpath(
            "/nc:rpc-reply/nc:rpc-error/nc:error-message", namespaces=NAMESPACES
        )
        if msgs:
            msg = msgs[0].text
            self.message = msg
        else:
            msg = "RPC Error"

        tags = ele.xpath(
            "/nc:rpc-reply/nc:rpc-error/nc:error-tag", namespaces=NAMESPACES
        )
        if tags:
            self.tag = tags[0].text

        self.severity = "error"

        err_info = ele.xpath(
            "/nc:rpc-reply/nc:rpc-error/nc:error-info", namespaces=NAMESPACES
        )
        if err_info:
            self.info = etree.tostring(err_info[0])

        super(RpcError, self).__init__(msg)
