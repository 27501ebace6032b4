# Copyright (c) 2021 Ian C. Good
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

"""The module-level interface for sending mail through one process-wide
|SmtpTransport|, which is created the first time it is needed::

    from mailsender import configure, send

    configure(tls_verify='relaxed')
    result = send('recipient@example.com', 'support@mail.example.org',
                  'Test', '<h1>Hello</h1>')
    print(result.message_id)

"""

import gevent
from gevent.event import AsyncResult

from mailsender import logging
from mailsender.message import Message
from mailsender.transport.smtp import SmtpTransport

__all__ = ['configure', 'get_transport', 'reset', 'send', 'submit']

log = logging.getMailLogger(__name__)

_options = {}
_transport = None


def configure(**options):
    """Sets the options used to create the process-wide transport. If the
    transport already exists, it is stopped and replaced on next use.

    :param options: Keyword arguments for |SmtpTransport|, e.g. ``host``,
                    ``port``, ``secure`` or ``tls_verify``.

    """
    global _options
    reset()
    _options = dict(options)


def get_transport():
    """Returns the process-wide transport, creating it if necessary.

    :rtype: |SmtpTransport|

    """
    global _transport
    if _transport is None:
        _transport = SmtpTransport(**_options)
    return _transport


def reset():
    """Stops the process-wide transport, if it exists. Sends still waiting on
    it fail with a |TransportError|, and the next send creates a new one with
    the current options.

    """
    global _transport
    transport, _transport = _transport, None
    if transport is not None:
        transport.kill()


def _deliver(message):
    try:
        result = get_transport().attempt(message)
    except Exception as exc:
        log.failed(message, exc)
        raise
    log.sent(message, result)
    return result


def send(to, sender, subject, html):
    """Sends one HTML message, blocking the calling greenlet until the mail
    server accepts or refuses it. Nothing is retried.

    :param to: The recipient address, or a comma-separated list of them.
    :param sender: The sender address.
    :param subject: The message subject.
    :param html: The HTML body.
    :returns: The |DeliveryResult|, whose ``message_id`` identifies the
              submitted message.
    :raises: |TransportError|, TypeError, ValueError

    """
    message = Message(to, sender, subject, html)
    message.flatten()
    return _deliver(message)


def submit(to, sender, subject, html):
    """Like :func:`send`, but returns immediately. The delivery runs in a new
    greenlet.

    :returns: A :class:`~gevent.event.AsyncResult` that will hold the
              |DeliveryResult| or the raised exception.
    :raises: TypeError, ValueError

    """
    message = Message(to, sender, subject, html)
    message.flatten()
    async_result = AsyncResult()

    def _run():
        try:
            async_result.set(_deliver(message))
        except Exception as exc:
            async_result.set_exception(exc)

    gevent.spawn(_run)
    return async_result


# vim:et:fdm=marker:sts=4:sw=4:ts=4
