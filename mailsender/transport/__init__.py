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

"""Package implementing the hand-off of messages to a mail server with the
SMTP protocol. Each attempt is made exactly once; a failure of any kind is
reported to the caller as a :class:`TransportError` and never retried.

"""

from mailsender.core import MailSenderError

__all__ = ['TransportError', 'DeliveryResult']


class TransportError(MailSenderError):
    """Raised when the mail server could not be reached, failed the
    conversation, or refused the message. The ``reply`` attribute holds the
    |Reply| that describes the failure: its ``command`` names the step that
    failed (e.g. ``b'[CONNECT]'``, ``b'RCPT'``) and its ``code`` is either
    the server's or one synthesized by this library.

    :param reply: The |Reply| describing the failure.

    """

    def __init__(self, reply):
        command = reply.command or b'[unknown command]'
        msg = 'Delivery failure on {0}: {1}'.format(
            command.decode('ascii'), str(reply))
        super(TransportError, self).__init__(msg)
        self.reply = reply

    def is_permanent(self):
        """Checks whether the server indicated the same attempt would fail
        again, meaning the reply code begins with a ``5``.

        :rtype: True or False

        """
        return self.reply.code[0] == '5'


class DeliveryResult(object):
    """The outcome of a message the server accepted.

    :param message: The |Message| that was submitted.
    :param accepted: List of recipient addresses the server accepted.
    :param rejected: Dictionary of each refused recipient address to the
                     :class:`TransportError` describing its refusal.
    :param reply: The |Reply| the server gave to the message data.

    """

    def __init__(self, message, accepted, rejected, reply):
        #: The ``Message-Id`` of the submitted message.
        self.message_id = message.message_id

        #: The sender address used in the ``MAIL`` command.
        self.sender = message.envelope_sender

        #: Every address given in a ``RCPT`` command.
        self.recipients = list(message.recipients)

        self.accepted = accepted
        self.rejected = rejected
        self.reply = reply

    def __str__(self):
        return self.message_id

    def __repr__(self):
        template = '<DeliveryResult message_id={0!r} reply={1!r}>'
        return template.format(self.message_id, str(self.reply))


# vim:et:fdm=marker:sts=4:sw=4:ts=4
