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


"""Logs the conversation on each connection to the mail server."""

from functools import partial

from gevent.ssl import CERT_NONE

__all__ = ['SocketLogger']


class SocketLogger(object):
    """Logs each operation on a connection as an ``fd:<fileno>:<operation>``
    line at the ``DEBUG`` level, so the full SMTP conversation can be traced
    without mixing free-form text into the output.

    :param log: :py:class:`logging.Logger` object to log through.

    """

    def __init__(self, log):
        from mailsender.logging import logline
        self._log = partial(logline, log.debug, 'fd')

    def _line(self, socket, operation, **data):
        self._log(socket.fileno(), operation, **data)

    def connect(self, socket, address=None):
        """Logs a new connection. The peer defaults to the socket's
        :meth:`~socket.socket.getpeername`.

        """
        self._line(socket, 'connect', peer=address or socket.getpeername())

    def send(self, socket, data):
        self._line(socket, 'send', data=data)

    def recv(self, socket, data):
        self._line(socket, 'recv', data=data)

    def encrypt(self, socket, context):
        """Logs the start of a TLS handshake, noting whether ``context`` will
        verify the server certificate and hostname.

        """
        self._line(socket, 'encrypt',
                   verify=getattr(context, 'verify_mode', None) != CERT_NONE,
                   check_hostname=getattr(context, 'check_hostname', False))

    def close(self, socket):
        self._line(socket, 'close')


# vim:et:fdm=marker:sts=4:sw=4:ts=4
