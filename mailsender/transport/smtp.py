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

"""Submits messages to one mail server at a fixed ``host:port``, by default
the local mail transfer agent on ``localhost:25``.

"""

from gevent import ssl

from mailsender import logging
from .client import SmtpTransportClient
from .pool import TransportPool

__all__ = ['SmtpTransport', 'build_context']

log = logging.getMailLogger(__name__)

TLS_VERIFY_STRICT = 'strict'
TLS_VERIFY_RELAXED = 'relaxed'


def build_context(tls_verify=TLS_VERIFY_STRICT):
    """Builds the client :class:`~gevent.ssl.SSLContext` for a certificate
    validation setting.

    :param tls_verify: ``'strict'`` verifies the server certificate and
                       hostname. ``'relaxed'`` accepts any certificate, such
                       as a self-signed one on a local mail server.
    :raises: ValueError

    """
    if tls_verify not in (TLS_VERIFY_STRICT, TLS_VERIFY_RELAXED):
        raise ValueError('Invalid tls_verify value', tls_verify)
    context = ssl.create_default_context(ssl.Purpose.SERVER_AUTH)
    if tls_verify == TLS_VERIFY_RELAXED:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return context


class SmtpTransport(TransportPool):
    """Manages the submission of messages to a specific ``host:port``.
    Connections may be recycled when ``idle_timeout`` is given, to send
    multiple messages over a single channel.

    :param host: Host string to connect to.
    :param port: Port to connect to.
    :param secure: If True, the connection is encrypted immediately after
                   connecting. Otherwise it starts in plaintext and is
                   encrypted with STARTTLS if the server offers it.
    :param tls_verify: Either ``'strict'`` or ``'relaxed'``. The relaxed
                       setting disables certificate validation, which is only
                       appropriate for a known self-signed local server, and
                       logs a warning when the transport is created.
    :param context: An explicit :class:`~gevent.ssl.SSLContext`, used instead
                    of the one built from ``tls_verify``.
    :param tls_required: If True, it is a delivery failure if TLS cannot be
                         negotiated with STARTTLS.
    :param pool_size: At most this many simultaneous connections will be open
                      to the server.
    :param idle_timeout: Timeout in seconds after a message is delivered before
                         a QUIT command is sent and the connection terminated.
                         If another message should be delivered before this
                         timeout expires, the connection will be re-used. By
                         default, QUIT is sent immediately and connections are
                         never re-used.
    :param connect_timeout: Optional timeout in seconds for the connection
                            and any immediate TLS handshake.
    :param command_timeout: Optional timeout in seconds to wait for a reply to
                            each SMTP command.
    :param data_timeout: Optional timeout in seconds to wait for a reply to
                         message data, defaulting to ``command_timeout``.
    :param client_kwargs: Other keyword arguments, e.g. ``ehlo_as`` or
                          ``socket_creator``, are passed to
                          :class:`~mailsender.transport.client.SmtpTransportClient`.

    """

    _default_class = SmtpTransportClient

    def __init__(self, host='localhost', port=25, secure=False,
                 tls_verify=TLS_VERIFY_STRICT, context=None, pool_size=None,
                 client_class=None, **client_kwargs):
        super(SmtpTransport, self).__init__(pool_size)
        self.client_class = client_class or self._default_class
        self.host = host
        self.port = port
        self.secure = secure
        self.tls_verify = tls_verify
        self.context = context or build_context(tls_verify)
        self.client_kwargs = client_kwargs
        if self.context.verify_mode == ssl.CERT_NONE:
            log.insecure((host, port))

    def add_client(self):
        return self.client_class((self.host, self.port), self.queue,
                                 context=self.context,
                                 tls_immediately=self.secure,
                                 **self.client_kwargs)

    def enqueue(self, message):
        message.flatten()
        return super(SmtpTransport, self).enqueue(message)


# vim:et:fdm=marker:sts=4:sw=4:ts=4
