# Copyright (c) 2012 Ian C. Good
#
# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to deal
# in the Software without restriction, including without limitation the rights
# to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in
# all copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
# AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
# OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN
# THE SOFTWARE.
#

import re
from contextlib import contextmanager
from socket import error as socket_error
from errno import ECONNRESET, EPIPE
from io import BytesIO

from gevent.ssl import SSLSocket, SSLWantReadError

from mailsender import logging
from . import ConnectionLost, BadReply

__all__ = ['IO']

line_pattern = re.compile(br'(.*?)\r?\n')
reply_line_pattern = re.compile(br'^(\d\d\d)([ \t-])(.*)$')

log = logging.getSocketLogger(__name__)


class IO(object):
    """Buffers the commands sent to a server and parses the replies read
    back from it.

    :param socket: The connected socket.
    :param tls_wrapper: Optional function taking the socket and a
                        :class:`~gevent.ssl.SSLContext`, returning the
                        encrypted socket after its handshake.
    :param address: The ``(host, port)`` the socket is connected to. The host
                    is used as the TLS server name.

    """

    def __init__(self, socket, tls_wrapper=None, address=None):
        self.socket = socket
        self._address = address
        if tls_wrapper:
            self._tls_wrapper = tls_wrapper

        self.send_buffer = BytesIO()
        self.recv_buffer = b''

    @property
    def address(self):
        if not self._address:
            self._address = self.socket.getpeername()
        return self._address

    @property
    def encrypted(self):
        return isinstance(self.socket, SSLSocket)

    def close(self):
        log.close(self.socket)
        if self.encrypted:
            try:
                self.socket.unwrap()
            except SSLWantReadError:
                pass
            except socket_error as exc:
                if exc.errno not in (0, EPIPE, ECONNRESET):
                    raise
        self.socket.close()

    @contextmanager
    def _reset_is_lost(self):
        try:
            yield
        except socket_error as exc:
            if exc.errno == ECONNRESET:
                raise ConnectionLost() from exc
            raise

    def raw_send(self, data):
        with self._reset_is_lost():
            self.socket.sendall(data)
        log.send(self.socket, data)

    def raw_recv(self):
        with self._reset_is_lost():
            data = self.socket.recv(4096)
        log.recv(self.socket, data)
        if not data:
            raise ConnectionLost()
        return data

    def _tls_wrapper(self, socket, context):
        host = self.address[0] if isinstance(self.address, tuple) else None
        sslsock = context.wrap_socket(socket, server_hostname=host,
                                      do_handshake_on_connect=False)
        sslsock.do_handshake()
        return sslsock

    def encrypt_socket(self, context):
        """Replaces the socket with an encrypted one, performing the TLS
        handshake. A failed handshake raises :class:`~ssl.SSLError`.

        :param context: The :class:`~gevent.ssl.SSLContext` to encrypt with.

        """
        log.encrypt(self.socket, context)
        self.socket = self._tls_wrapper(self.socket, context)

    def buffered_recv(self):
        self.recv_buffer += self.raw_recv()

    def buffered_send(self, data):
        self.send_buffer.write(data)

    def flush_send(self):
        pending = self.send_buffer.getvalue()
        if pending:
            self.send_buffer = BytesIO()
            self.raw_send(pending)

    def recv_line(self):
        """Reads one line from the server, without its line ending.

        :rtype: :py:obj:`bytes`
        :raises: :class:`~mailsender.smtp.ConnectionLost`

        """
        while True:
            match = line_pattern.match(self.recv_buffer)
            if match:
                self.recv_buffer = self.recv_buffer[match.end(0):]
                return match.group(1)
            self.buffered_recv()

    def recv_reply(self):
        """Reads one complete, possibly multi-line, reply. Every line must
        carry the same code, and all but the last separate it from the text
        with a ``-``.

        :returns: A tuple of the reply code and message strings.
        :raises: :class:`~mailsender.smtp.BadReply`,
                 :class:`~mailsender.smtp.ConnectionLost`

        """
        code = None
        message_lines = []
        while True:
            line = self.recv_line()
            match = reply_line_pattern.match(line)
            if not match:
                message_lines.append(line)
                raise BadReply(b'\r\n'.join(message_lines))
            if code and code != match.group(1):
                raise BadReply(line)
            code = match.group(1)
            message_lines.append(match.group(3))
            if match.group(2) != b'-':
                break

        body = b'\r\n'.join(message_lines)
        try:
            return code.decode('ascii'), body.decode('utf-8')
        except UnicodeDecodeError:
            raise BadReply(body)

    def send_command(self, command):
        self.buffered_send(b''.join((command, b'\r\n')))


# vim:et:fdm=marker:sts=4:sw=4:ts=4
