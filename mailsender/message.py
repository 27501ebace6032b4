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

"""Module defining :class:`Message`, the HTML message handed to the mail
server along with the envelope addresses taken from it.

"""

import time
import uuid
from io import BytesIO
from math import floor
from socket import getfqdn
from email.message import EmailMessage
from email.generator import BytesGenerator
from email.policy import SMTP
from email.utils import getaddresses, parseaddr, formatdate

from mailsender.util import check_argtype

__all__ = ['Message']

# Non-ASCII bodies are given a 7-bit Content-Transfer-Encoding, so the
# rendered message never depends on the server offering 8BITMIME.
_policy = SMTP.clone(cte_type='7bit')


class Message(object):
    """A single HTML message. Nothing about the addresses is validated here,
    the mail server is left to accept or refuse them.

    :param recipient: The ``To`` header value, one address or a
                      comma-separated list, optionally with display names.
    :param sender: The ``From`` header value, optionally with a display name.
    :param subject: The ``Subject`` header value.
    :param html: The HTML body.
    :raises: TypeError

    """

    def __init__(self, recipient, sender, subject, html):
        check_argtype(recipient, str, 'recipient')
        check_argtype(sender, str, 'sender')
        check_argtype(subject, str, 'subject')
        check_argtype(html, str, 'html')

        self.recipient = recipient
        self.sender = sender
        self.subject = subject
        self.html = html

        #: Timestamp when the message was created.
        self.timestamp = time.time()

        #: Bare addresses the message is delivered to, as given in the
        #: ``RCPT`` commands.
        self.recipients = self._envelope_recipients()

        #: Bare address given in the ``MAIL`` command.
        self.envelope_sender = parseaddr(sender)[1] or sender

        #: The ``Message-Id`` header value, which identifies the delivery.
        self.message_id = self._build_message_id()

        self._data = None

    def _envelope_recipients(self):
        addresses = [addr for _, addr in getaddresses([self.recipient])
                     if addr]
        return addresses or [self.recipient]

    def _build_message_id(self):
        _, at, domain = self.envelope_sender.rpartition('@')
        if not at or not domain:
            domain = getfqdn()
        return '<{0}.{1:.0f}@{2}>'.format(uuid.uuid4().hex,
                                          floor(self.timestamp), domain)

    def build(self):
        """Builds the MIME representation of the message.

        :rtype: :class:`email.message.EmailMessage`
        :raises: ValueError

        """
        msg = EmailMessage(policy=_policy)
        msg['From'] = self.sender
        msg['To'] = self.recipient
        msg['Subject'] = self.subject
        msg['Date'] = formatdate(self.timestamp, localtime=True)
        msg['Message-Id'] = self.message_id
        msg.set_content(self.html, subtype='html', charset='utf-8')
        return msg

    def flatten(self):
        """Renders the complete message, headers and body, with CRLF line
        endings. The result is computed once and cached.

        :rtype: :py:obj:`bytes`
        :raises: ValueError

        """
        if self._data is None:
            outfp = BytesIO()
            BytesGenerator(outfp, policy=_policy).flatten(self.build(), False)
            self._data = outfp.getvalue()
        return self._data

    def __repr__(self):
        template = '<Message at {0}, message_id={1!r}>'
        return template.format(hex(id(self)), self.message_id)


# vim:et:fdm=marker:sts=4:sw=4:ts=4
