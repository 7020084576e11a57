from datetime import datetime
import logging
import inspect

from lxml import etree

from ncframe.constants import NAMESPACES
from ncframe.error import RpcError
from ncframe.session import SessionState
from ncframe import rpc

# Defines the scope for netconf traces
_logger = logging.getLogger("ncframe.manager")


def _pretty_xml(xml):
    """Reformats a given string containing an XML document (for human readable output)"""

    pretty = ""
    try:
        parser = etree.XMLParser(remove_blank_text=True)
        tree = etree.fromstring(xml.strip().encode("utf-8"), parser)
        pretty = etree.tostring(tree, pretty_print=True).decode()
    except etree.Error as e:
        pretty = "Error: Cannot format XML message: {}\nPlain message is:\n{}".format(
            str(e), xml
        )

    return pretty


class Manager:
    """A helper class for performing common NETCONF operations with pretty logging.

    This class is also a context manager and can be used with `with`
    statements to automatically close the underlying session.

    NETCONF requests and responses are logged using the ``ncframe.manager`` scope.
    The log level is logger.DEBUG.

    Each log entry shows a log ID (the session hostname as default).
    Additionally, the round-trip delay between request and its response is
    computed and displayed.

    The Python logger receives a dictionary via `extra` parameter, whose
    key is ``ncframe.Manager.funcname`` and which contains the name of
    the API function being logged.

    :ivar session: The underlying
                   :class:`ncframe.session.Session` connected
                   to the server
    :ivar str log_id: application-specific log ID (None as default)

    """

    def __init__(self, session, log_id=None):
        self.session = session
        self.log_id = log_id
        self._start_time = self._get_timestamp()
        self._funcname = None

    def __enter__(self):
        return self

    def __exit__(self, a, b, c):
        self.session.__exit__(a, b, c)

    @staticmethod
    def logger():
        """Returns the internally used logger instance (same for all sessions)"""
        return _logger

    def _get_timestamp(self):
        return datetime.now()

    def _is_logger_enabled(self):
        return Manager.logger().isEnabledFor(logging.DEBUG)

    def _get_connection_info(self, direction):
        peer = self.log_id or getattr(self.session, "hostname", None)
        if peer:
            return " {} {}".format(direction, peer)
        return ""

    def _fetch_funcname(self):
        """Retrieves and stores the name of the API function being called"""
        self._funcname = inspect.stack()[3][3]

    def _log_rpc_request(self, body):
        if self._is_logger_enabled():
            self._fetch_funcname()
            self._start_time = self._get_timestamp()

            Manager.logger().debug(
                "NC Request%s:\n%s",
                self._get_connection_info("=>"),
                _pretty_xml(rpc.make_rpc(body)),
                extra={"ncframe.Manager.funcname": self._funcname},
            )

    def _elapsed(self):
        taken = self._get_timestamp() - self._start_time
        return "%d.%03d" % (taken.seconds, taken.microseconds / 1000)

    def _log_rpc_response(self, reply):
        if self._is_logger_enabled():
            Manager.logger().debug(
                "NC Response%s (%s sec):\n%s",
                self._get_connection_info("<="),
                self._elapsed(),
                _pretty_xml(reply),
                extra={"ncframe.Manager.funcname": self._funcname},
            )

    def _log_rpc_failure(self, message):
        if self._is_logger_enabled():
            Manager.logger().debug(
                "NC Failure%s (%s sec)\nCause: %s\n",
                self._get_connection_info("<="),
                self._elapsed(),
                message,
                extra={"ncframe.Manager.funcname": self._funcname},
            )

    def _send_rpc(self, body):
        """Send given operation and parse the reply

        Both, the request and response messages are logged with timestamp.
        In case of failure or exceptions, the error cause is logged and the
        exception is re-raised.

        :param str body: the operation to send, without ``<rpc>`` envelope

        :rtype: tuple(`str` raw XML reply, :class:`lxml.Element`)
        :raises RpcError: if the reply contains an ``<rpc-error>``
        """
        self._log_rpc_request(body)
        try:
            raw = self.session.send_rpc(body)
        except Exception as e:
            self._log_rpc_failure("RPC exception: {}".format(e))
            raise

        self._log_rpc_response(raw)
        ele = to_ele(raw)
        if ele.xpath("/nc:rpc-reply/nc:rpc-error", namespaces=NAMESPACES):
            raise RpcError(raw, ele)
        return (raw, ele)

    def hello(self):
        """Performs the ``<hello>`` exchange unless it already happened

        :return: the capabilities advertised by the server
        :rtype: list of str
        """
        if self.session.state is SessionState.CONNECTED:
            self.session.send_hello()
        return self.server_capabilities

    @property
    def server_capabilities(self):
        return capabilities_from_hello(to_ele(self.session.server_hello))

    def get(self, filter=None):
        """Send a ``<get>`` request

        :param str filter: The ``<filter>`` node to use in the request

        :rtype: :class:`DataReply`
        """
        (raw, ele) = self._send_rpc(rpc.get(filter=convert_filter(filter)))
        return DataReply(raw, ele)

    def get_config(self, source="running", filter=None):
        """Send a ``<get-config>`` request

        :param str source: The datastore to retrieve the configuration from

        :param str filter: The ``<filter>`` node to use in the request

        :rtype: :class:`DataReply`
        """
        (raw, ele) = self._send_rpc(
            rpc.get_config(source=source, filter=convert_filter(filter))
        )
        return DataReply(raw, ele)

    def edit_config(
        self,
        config,
        target="running",
        default_operation=None,
        test_option=None,
        error_option=None,
    ):
        """Send an ``<edit-config>`` request

        :param str config: The ``<config>`` node to use in the request

        :param str target: The datastore to edit

        :param str default_operation: The default-operation to
                                      perform; can be ``None``,
                                      'merge', 'replace', or 'none'.

        :param str test_option: The test-option to use; can be
                               ``None``, 'test-then-set', 'set', or
                               'test-only'

        :param str error_option: The error-option to use; can be
                                 ``None``, 'stop-on-error',
                                 'continue-on-error', or
                                 'rollback-on-error'

        :rtype: :class:`RPCReply`
        """
        body = rpc.edit_config(
            from_ele(config), target, default_operation, test_option, error_option
        )
        (raw, _) = self._send_rpc(body)
        return RPCReply(raw)

    def copy_config(self, target, source):
        """Send a ``<copy-config>`` request

        :param str source: The source datastore or the <config> element
                           containing the complete configuration to copy.

        :param str target: The destination datastore
        """
        (raw, _) = self._send_rpc(rpc.copy_config(target=target, source=source))
        return RPCReply(raw)

    def delete_config(self, target):
        """Send a ``<delete-config>`` request"""
        (raw, _) = self._send_rpc(rpc.delete_config(target))
        return RPCReply(raw)

    def discard_changes(self):
        """Send a ``<discard-changes>`` request"""
        (raw, _) = self._send_rpc(rpc.discard_changes())
        return RPCReply(raw)

    def commit(self, confirmed=False, confirm_timeout=None):
        """Send a ``<commit>`` request

        :param bool confirmed: Set to ``True`` if this is a confirmed-commit

        :param int confirm_timeout: When `confirmed` is ``True``, the
                                    number of seconds until the commit
                                    will be automatically rolled back
        """
        (raw, _) = self._send_rpc(
            rpc.commit(confirmed=confirmed, confirm_timeout=confirm_timeout)
        )
        return RPCReply(raw)

    def lock(self, target):
        """Send a ``<lock>`` request"""
        (raw, _) = self._send_rpc(rpc.lock(target))
        return RPCReply(raw)

    def unlock(self, target):
        """Send an ``<unlock>`` request"""
        (raw, _) = self._send_rpc(rpc.unlock(target))
        return RPCReply(raw)

    def validate(self, source):
        """Send a ``<validate>`` request

        :param source: The datastore name, or a ``<config>`` lxml element
        """
        (raw, _) = self._send_rpc(rpc.validate(source))
        return RPCReply(raw)

    def kill_session(self, session_id):
        """Send a ``<kill-session>`` request"""
        (raw, _) = self._send_rpc(rpc.kill_session(session_id))
        return RPCReply(raw)

    def close_session(self):
        """Send a ``<close-session>`` request"""
        (raw, _) = self._send_rpc(rpc.close_session())
        return RPCReply(raw)

    def dispatch(self, body):
        """Send an arbitrary operation

        :param body: The operation to send, as a string or lxml
                     element; it should not include an ``<rpc>`` tag
                     (one will be generated for you)

        :rtype: :class:`RPCReply`
        """
        (raw, _) = self._send_rpc(from_ele(body))
        return RPCReply(raw)


class DataReply:
    """A response containing a ``<data>`` element

    :ivar str data_xml: The data element in string form (note that
                        this value was handled by lxml)

    :ivar data_ele: The lxml parsed representation of the data

    :ivar str raw_reply: The raw reply from the server

    """

    def __init__(self, raw, ele):
        self.data_ele = ele.find("{urn:ietf:params:xml:ns:netconf:base:1.0}data")
        self.data_xml = (
            etree.tostring(self.data_ele).decode("utf-8")
            if self.data_ele is not None
            else None
        )
        self.raw_reply = raw


class RPCReply:
    """A non-error response to an ``<rpc>``

    :ivar str xml: The raw reply from the server
    """

    def __init__(self, xml):
        self.xml = xml

    @property
    def ok(self):
        ele = to_ele(self.xml)
        return bool(ele.xpath("/nc:rpc-reply/nc:ok", namespaces=NAMESPACES))


def capabilities_from_hello(hello):
    return [
        x.text
        for x in hello.xpath(
            "/nc:hello/nc:capabilities/nc:capability", namespaces=NAMESPACES
        )
    ]


def convert_filter(filter):
    if filter is None:
        return None

    if isinstance(filter, tuple):
        (kind, value) = filter
        if kind == "subtree":
            return "<filter>{}</filter>".format(value)
        else:
            raise NotImplementedError("Unimplemented filter type {}".format(kind))

    return filter


def from_ele(maybe_ele):
    if etree.iselement(maybe_ele):
        return etree.tostring(maybe_ele).decode("utf-8")
    else:
        return maybe_ele


def to_ele(maybe_ele):
    """Convert the given string to an lxml element

    :param maybe_ele: If this is a string, it will be parsed by
                      lxml. If it is already an lxml element the
                      parameter is returned unchanged
    """
    if etree.iselement(maybe_ele):
        return maybe_ele
    else:
        return etree.fromstring(maybe_ele.strip().encode("utf-8"))
