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

"""Logs the outcome of each message submission, one line per attempt."""

from functools import partial

__all__ = ['MailLogger']


class MailLogger(object):
    """Logs submission results keyed on the message's ``Message-Id``.

    :param log: :py:class:`logging.Logger` object to log through.

    """

    def __init__(self, log):
        from mailsender.logging import logline
        self.log = partial(logline, log.info, 'mail')
        self.log_error = partial(logline, log.error, 'mail')
        self.log_warning = partial(logline, log.warning, 'mail')

    def sent(self, message, result):
        """Logs a message the server accepted, at the ``INFO`` level.

        :param message: The |Message| that was submitted.
        :param result: The |DeliveryResult| of the submission.

        """
        self.log(message.message_id, 'sent',
                 sender=result.sender,
                 accepted=result.accepted,
                 rejected=sorted(result.rejected),
                 reply=str(result.reply))

    def failed(self, message, exc):
        """Logs a message that could not be submitted, at the ``ERROR``
        level. No stack trace is included.

        :param message: The |Message| that was submitted.
        :param exc: The exception that ended the submission, usually a
                    |TransportError| whose reply names the failing step.

        """
        data = {'sender': message.envelope_sender,
                'recipients': message.recipients}
        reply = getattr(exc, 'reply', None)
        if reply is not None:
            command = reply.command or b'[unknown command]'
            data['command'] = command.decode('ascii')
            data['reply'] = str(reply)
        else:
            data['error'] = '{0}: {1}'.format(type(exc).__name__, exc)
        self.log_error(message.message_id, 'failed', **data)

    def insecure(self, address):
        """Logs, at the ``WARNING`` level, that a transport to ``address``
        will not verify the server's TLS certificate.

        """
        self.log_warning('none', 'insecure', address=address)


# vim:et:fdm=marker:sts=4:sw=4:ts=4
