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


"""Holds the replies received from an SMTP server, made up of a three-digit
code and the text after it, along with the replies this library synthesizes
when the conversation fails without the server saying why.

"""

import re

__all__ = ['Reply', 'timed_out', 'connection_failed', 'tls_failure',
           'message_too_big', 'conversion_failed', 'aborted']

code_pattern = re.compile(r'^[1-5]\d\d$')
status_pattern = re.compile(r'^[245]\.\d{1,3}\.\d{1,3}(?=\s|$)')


class Reply(object):
    """A reply from the server. A reply to a pipelined command is created
    empty, and is populated by :meth:`recv` once the server answers.

    :param code: The three-digit SMTP code.
    :param message: The text of the reply, exactly as the server sent it.
    :param command: The command the reply answers, e.g. ``b'RCPT'``, or a
                    bracketed pseudo-command such as ``b'[CONNECT]'``.
    :param address: The ``(host, port)`` of the server that gave the reply.

    """

    def __init__(self, code=None, message=None, command=None, address=None):
        self.code = code
        self.message = message
        self.command = command
        self.address = address

    @property
    def code(self):
        return self._code

    @code.setter
    def code(self, value):
        if value is not None and not code_pattern.match(value):
            raise ValueError('Invalid SMTP reply code', value)
        self._code = value

    @property
    def enhanced_status_code(self):
        """The RFC 3463 status code at the start of the message, e.g.
        ``'5.1.1'``, or ``None`` if the server did not give one.

        """
        match = self.message and status_pattern.match(self.message)
        return match.group(0) if match else None

    def __eq__(self, other):
        if not hasattr(other, 'code') or not hasattr(other, 'message'):
            return NotImplemented
        return (self.code, self.message) == (other.code, other.message)

    def __repr__(self):
        return '<Reply code={0!r} message={1!r}>'.format(self.code,
                                                         self.message)

    def __str__(self):
        return '{0} {1}'.format(self.code, self.message)

    def __bool__(self):
        return self.code is not None

    def copy(self, reply):
        """Takes the code and message of ``reply``, keeping this object's
        ``command`` and ``address``.

        :returns: This object.

        """
        self.code = reply.code
        self.message = reply.message
        return self

    def recv(self, io):
        """Populates the object with the next reply read from ``io``, an
        :class:`~mailsender.smtp.io.IO` object.

        """
        self.code, self.message = io.recv_reply()
        self.address = io.address

    def is_error(self):
        """True when the code begins with a ``4`` or a ``5``."""
        return bool(self.code) and self.code[0] in '45'


#: Reply used when the server does not answer before a timeout expires.
timed_out = Reply('421', '4.4.2 Connection timed out')

#: Reply used when the connection cannot be made or fails unexpectedly.
connection_failed = Reply('451', '4.3.0 Connection failed')

#: Reply used when the TLS handshake with the server fails.
tls_failure = Reply('421', '4.7.0 TLS negotiation failed')

#: Reply used when the message exceeds the server's advertised ``SIZE``.
message_too_big = Reply('552', '5.3.4 Message exceeded maximum allowed size')

#: Reply used when an address needs ``SMTPUTF8`` and the server lacks it.
conversion_failed = Reply('553', '5.6.7 Non-ASCII address not supported')

#: Reply used when the transport is stopped before a delivery finishes.
aborted = Reply('451', '4.3.2 Delivery aborted, transport stopped')


# vim:et:fdm=marker:sts=4:sw=4:ts=4
