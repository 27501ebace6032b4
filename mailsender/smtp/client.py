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


"""The SMTP conversation with the mail server, one method per command."""

from gevent import Timeout
from gevent.socket import wait_read

from .io import IO
from .extensions import Extensions
from .reply import Reply
from .datasender import DataSender

__all__ = ['Client']


class Client(object):
    """Speaks SMTP over a connected socket. Every command method returns a
    |Reply|. When the server offers PIPELINING, the replies to MAIL, RCPT and
    message data stay empty until the next command that waits for its own
    reply, which reads them all in order.

    :param socket: The connected socket.
    :param tls_wrapper: Optional function taking the socket and a
                        :class:`~gevent.ssl.SSLContext`, returning the
                        encrypted socket after its handshake.
    :param address: The ``(host, port)`` of the server, by default the
                    socket's :py:meth:`~socket.socket.getpeername`.

    """

    def __init__(self, socket, tls_wrapper=None, address=None):
        self.io = IO(socket, tls_wrapper, address)

        #: Replies still waiting to be read from the server, oldest first.
        self.reply_queue = []

        #: The last |Reply| with a ``4xx`` or ``5xx`` code.
        self.last_error = None

        #: The |Extensions| from the server's last EHLO reply.
        self.extensions = Extensions()

    def _flush_pipeline(self):
        self.io.flush_send()
        while self.reply_queue:
            reply = self.reply_queue.pop(0)
            reply.recv(self.io)
            if reply.is_error():
                self.last_error = reply

    def _expect(self, command):
        reply = Reply(command=command)
        self.reply_queue.append(reply)
        return reply

    def _send(self, command, line, pipelined=False):
        reply = self._expect(command)
        self.io.send_command(line)
        if not pipelined or 'PIPELINING' not in self.extensions:
            self._flush_pipeline()
        return reply

    def _encode(self, address):
        encoding = 'utf-8' if 'SMTPUTF8' in self.extensions else 'ascii'
        return address.encode(encoding)

    def _greet(self, command, identity):
        if not isinstance(identity, bytes):
            identity = identity.encode('ascii')
        return self._send(command, b' '.join((command, identity)))

    def has_reply_waiting(self):
        """Checks, without blocking, whether the server has sent something
        unprompted, usually a notice that it is closing an idle connection.

        :rtype: True or False

        """
        fd = self.io.socket.fileno()
        if fd < 0:
            return False
        try:
            wait_read(fd, 0.01, Timeout())
        except Timeout:
            return False
        return True

    def get_reply(self, command=b'[TIMEOUT]'):
        """Reads a reply the server sent without a command, labelled with
        ``command``.

        """
        reply = self._expect(command)
        self._flush_pipeline()
        return reply

    def get_banner(self):
        """Waits for the greeting sent when the connection opens."""
        return self.get_reply(b'[BANNER]')

    def custom_command(self, command, arg=None):
        """Sends ``command``, with ``arg`` if given, and waits for the reply.
        The reply is labelled with the upper-cased ``command``.

        """
        line = b' '.join((command, arg)) if arg else command
        return self._send(command.upper(), line)

    def ehlo(self, ehlo_as):
        """Sends EHLO and waits for the reply. On a ``250``, the extensions
        listed in the reply replace :attr:`extensions` and the reply message
        is cut down to the greeting line.

        :param ehlo_as: The client's identity, usually its FQDN.

        """
        ehlo = self._greet(b'EHLO', ehlo_as)
        if ehlo.code == '250':
            self.extensions.reset()
            ehlo.message = self.extensions.parse_string(ehlo.message)
        return ehlo

    def helo(self, helo_as):
        """Sends HELO, for servers that refuse EHLO. A ``250`` leaves no
        extensions available.

        """
        helo = self._greet(b'HELO', helo_as)
        if helo.code == '250':
            self.extensions.reset()
        return helo

    def encrypt(self, context):
        """Encrypts the socket at once, for servers expecting TLS before the
        banner. Otherwise use :meth:`starttls`.

        """
        self.io.encrypt_socket(context)

    def starttls(self, context):
        """Sends STARTTLS and, on a ``220``, encrypts the socket with
        ``context``. EHLO must be sent again afterwards.

        :param context: The :class:`~gevent.ssl.SSLContext` to encrypt with.

        """
        reply = self.custom_command(b'STARTTLS')
        if reply.code == '220':
            self.encrypt(context)
        return reply

    def mailfrom(self, address, data_size=None, smtputf8=False):
        """Sends MAIL with the sender ``address``, pipelined if possible. The
        message size is given when the server offers SIZE.

        :param address: The sender address.
        :param data_size: Optional size of the message data.
        :param smtputf8: Request SMTPUTF8 for the transaction, required when
                         any envelope address is not ASCII. It is always
                         requested for a non-ASCII sender.
        :raises: :py:exc:`UnicodeEncodeError`

        """
        line = b'MAIL FROM:<' + self._encode(address) + b'>'
        if data_size is not None and 'SIZE' in self.extensions:
            line += b' SIZE=' + str(data_size).encode('ascii')
        if smtputf8 or not address.isascii():
            line += b' SMTPUTF8'
        return self._send(b'MAIL', line, pipelined=True)

    def rcptto(self, address):
        """Sends RCPT with the recipient ``address``, pipelined if possible.

        :raises: :py:exc:`UnicodeEncodeError`

        """
        line = b'RCPT TO:<' + self._encode(address) + b'>'
        return self._send(b'RCPT', line, pipelined=True)

    def data(self):
        """Sends DATA and waits for the reply. After a ``354`` the server
        expects :meth:`send_data` or :meth:`send_empty_data`.

        """
        return self.custom_command(b'DATA')

    def send_data(self, *data):
        """Sends the dot-stuffed message data and the ``.`` end marker,
        pipelined if possible.

        :param data: The message data, in one or more :py:obj:`bytes` parts.

        """
        reply = self._expect(b'[SEND_DATA]')
        DataSender(*data).send(self.io)
        if 'PIPELINING' not in self.extensions:
            self._flush_pipeline()
        return reply

    def send_empty_data(self):
        """Sends only the ``.`` end marker, backing out of a DATA command the
        server accepted after the transaction had already failed.

        """
        return self._send(b'[SEND_DATA]', b'.', pipelined=True)

    def rset(self):
        return self.custom_command(b'RSET')

    def quit(self):
        return self.custom_command(b'QUIT')


# vim:et:fdm=marker:sts=4:sw=4:ts=4
