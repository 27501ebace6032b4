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

"""Package implementing the client side of the SMTP protocol, as spoken to a
mail transfer agent accepting message submissions.

"""

from mailsender.core import MailSenderError

__all__ = ['SmtpError',
           'ConnectionLost',
           'BadReply']


class SmtpError(MailSenderError):
    """Base exception for errors in the SMTP conversation itself."""
    pass


class ConnectionLost(SmtpError):
    """Thrown when the server closes or resets the socket before the
    conversation is finished.

    """

    def __init__(self):
        msg = 'Connection was closed prematurely'
        super(ConnectionLost, self).__init__(msg)


class BadReply(SmtpError):
    """Thrown when the server sends a line that does not start with a valid
    SMTP reply code, or a multi-line reply whose codes do not match.

    :param data: The offending data, made available in the ``data``
                 attribute.

    """

    def __init__(self, data):
        super(BadReply, self).__init__('Bad SMTP reply from server.')
        self.data = data


# vim:et:fdm=marker:sts=4:sw=4:ts=4
