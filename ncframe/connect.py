import io
import socket

import paramiko

from ncframe.constants import DEFAULT_PORT, DEFAULT_TIMEOUT, NETCONF_SUBSYSTEM
from ncframe.error import ConnectFailed, InvalidPrivateKey
from ncframe.session import Session
from ncframe.log import logger

KEY_CLASSES = (
    paramiko.RSAKey,
    paramiko.ECDSAKey,
    paramiko.Ed25519Key,
)


def connect_ssh(
    host=None,
    port=DEFAULT_PORT,
    username="netconf",
    password=None,
    key=None,
    key_filename=None,
    sock=None,
    timeout=DEFAULT_TIMEOUT,
    initial_timeout=None,
):
    """Connect to a NETCONF server over SSH.

    When both a private key and a password are given, public key
    authentication is tried first and the password is the fallback.

    :param str host: Hostname or IP address; unused if an already-open
                     socket is provided

    :param int port: TCP port to initiate the connection; unused if an
                     already-open socket is provided

    :param str username: Username to login with; always required

    :param str password: Password to login with; not required if a
                         private key is provided instead

    :param str key: Private key material (PEM/OpenSSH text); not
                    required if a password is provided instead

    :param str key_filename: Path to an SSH private key; alternative
                             to `key`

    :param sock: An already-open TCP socket; SSH will be setup on top
                 of it

    :param float timeout: Seconds to wait for each reply from the server

    :param float initial_timeout: Seconds to wait when first connecting
                                  the socket and opening the channel

    :return: :class:`Session` object, not yet past the ``<hello>`` exchange

    :rtype: :class:`ncframe.session.Session`

    :raises ncframe.error.ConnectFailed: with ``stage`` set to ``dial``,
        ``authenticate``, ``channel`` or ``subsystem``

    """
    if not sock:
        sock = _dial(host, port, initial_timeout)

    transport = None
    try:
        transport = paramiko.Transport(sock)
        transport.start_client(timeout=initial_timeout)
    except Exception as e:
        if transport is not None:
            transport.close()
        sock.close()
        raise ConnectFailed("dial", e) from e

    try:
        pkey = _load_pkey(key, key_filename)
        _authenticate(transport, username, password, pkey)
    except Exception as e:
        transport.close()
        sock.close()
        raise ConnectFailed("authenticate", e) from e

    try:
        channel = transport.open_session(timeout=initial_timeout)
    except Exception as e:
        transport.close()
        sock.close()
        raise ConnectFailed("channel", e) from e

    try:
        channel.invoke_subsystem(NETCONF_SUBSYSTEM)
    except Exception as e:
        channel.close()
        transport.close()
        sock.close()
        raise ConnectFailed("subsystem", e) from e

    logger.info("NETCONF subsystem opened on %s:%s as %s", host, port, username)
    bundle = SshChannelStream(sock, transport, channel)
    return Session(bundle, hostname=host, timeout=timeout)


def _dial(host, port, initial_timeout):
    sock = socket.socket()
    sock.settimeout(initial_timeout)
    try:
        sock.connect((host, port))
    except Exception as e:
        sock.close()
        raise ConnectFailed("dial", e) from e
    sock.settimeout(None)
    return sock


def _authenticate(transport, username, password, pkey):
    if pkey is None and password is None:
        raise paramiko.AuthenticationException("No password or private key given")

    if pkey is not None:
        try:
            transport.auth_publickey(username, pkey)
        except paramiko.AuthenticationException:
            if password is None:
                raise
            logger.debug("Public key rejected for %s, trying password", username)

    if not transport.is_authenticated():
        transport.auth_password(username, password)


def _load_pkey(key, key_filename):
    if key:
        return _try_load_pkey(lambda cls: cls.from_private_key(io.StringIO(key)))
    if key_filename:
        return _try_load_pkey(lambda cls: cls.from_private_key_file(key_filename))
    return None


def _try_load_pkey(load):
    for cls in KEY_CLASSES:
        try:
            return load(cls)
        except (paramiko.SSHException, ValueError):
            pass
    raise InvalidPrivateKey("Unsupported or malformed private key")


class SshChannelStream:
    """The byte stream of a NETCONF subsystem channel

    Closing it releases the channel, the SSH transport and the socket.
    """

    def __init__(self, sock, transport, channel):
        self.sock = sock
        self.transport = transport
        self.channel = channel

    def recv(self, n):
        return self.channel.recv(n)

    def sendall(self, b):
        self.channel.sendall(b)

    def close(self):
        self.channel.close()
        self.transport.close()
        self.sock.close()
