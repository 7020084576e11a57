from queue import Queue
import threading

RPC_ERROR_WITH_MSG = """
<rpc-reply xmlns="urn:ietf:params:xml:ns:netconf:base:1.0">
  <rpc-error>
    <error-type>application</error-type>
    <error-tag>invalid-value</error-tag>
    <error-severity>error</error-severity>
    <error-path xmlns:t="http://example.com/schema/1.2/config">
      /t:top/t:interface[t:name="Ethernet0/0"]/t:mtu
    </error-path>
    <error-message xml:lang="en">MTU value 25000 is not within range 256..9192</error-message>
    <error-info><bad-element>mtu</bad-element></error-info>
  </rpc-error>
</rpc-reply>
"""

RPC_ERROR_WITHOUT_MSG = """
<rpc-reply xmlns="urn:ietf:params:xml:ns:netconf:base:1.0">
  <rpc-error>
    <error-type>application</error-type>
    <error-tag>invalid-value</error-tag>
    <error-severity>error</error-severity>
    <error-path xmlns:t="http://example.com/schema/1.2/config">
      /t:top/t:interface[t:name="Ethernet0/0"]/t:mtu
    </error-path>
  </rpc-error>
</rpc-reply>
"""

SERVER_HELLO = """<hello xmlns="urn:ietf:params:xml:ns:netconf:base:1.0">
  <capabilities>
    <capability>urn:ietf:params:netconf:base:1.0</capability>
    <capability>http://example.com/foo</capability>
  </capabilities>
  <session-id>4</session-id>
</hello>
"""

RPC_REPLY_OK = """<rpc-reply xmlns="urn:ietf:params:xml:ns:netconf:base:1.0">
  <ok/>
</rpc-reply>
"""

RPC_REPLY_DATA = """<rpc-reply xmlns="urn:ietf:params:xml:ns:netconf:base:1.0">
  <data>bar</data>
</rpc-reply>
"""


def framed(msg):
    """The message as a server puts it on the wire"""
    return (msg + "]]>]]>\n").encode("utf-8")


class MockSock:
    def __init__(self, recvs=()):
        self.recvs = Queue()
        for r in recvs:
            self.recvs.put(r)

        self.sent = []
        self.closed = False
        self.send_error = None

    def sendall(self, b):
        if self.send_error:
            raise self.send_error
        self.sent.append(b)

    def recv(self, _=-1):
        if self.closed:
            raise OSError("Socket is closed")

        r = self.recvs.get()
        if isinstance(r, Exception):
            raise r
        return r

    def close(self):
        self.closed = True
        self.recvs.put(b"")

    def feed_later(self, delay, data):
        t = threading.Timer(delay, self.recvs.put, args=(data,))
        t.daemon = True
        t.start()
        return t


class EchoSock(MockSock):
    """Sends back everything written to it"""

    def sendall(self, b):
        super(EchoSock, self).sendall(b)
        self.recvs.put(b)
