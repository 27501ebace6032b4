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


"""Keeps the log output of :mod:`mailsender` machine-parseable. Every line has
the form ``type:id:operation key=value...``, where each value is the
:func:`repr` of a Python literal, so :func:`parseline` can turn a line back
into its parts.

"""

import re
import reprlib
import logging
from ast import literal_eval

from .socket import SocketLogger
from .mail import MailLogger

__all__ = ['getSocketLogger', 'getMailLogger', 'logline', 'parseline']

log_repr = reprlib.Repr()
log_repr.maxstring = 100

line_pattern = re.compile(r'^([^:]+):([^:]+):(\S+) ?')
key_pattern = re.compile(r'^([^=\s]+)=')


def getSocketLogger(name):
    """Returns a :class:`~mailsender.logging.socket.SocketLogger` writing to
    :py:func:`logging.getLogger(name) <logging.getLogger>`.

    """
    return SocketLogger(logging.getLogger(name))


def getMailLogger(name):
    """Returns a :class:`~mailsender.logging.mail.MailLogger` writing to
    :py:func:`logging.getLogger(name) <logging.getLogger>`.

    """
    return MailLogger(logging.getLogger(name))


def logline(log, type, typeid, operation, **data):
    parts = ['{0}:{1}:{2}'.format(type, typeid, operation)]
    parts.extend('{0}={1}'.format(key, log_repr.repr(data[key]))
                 for key in sorted(data))
    log(' '.join(parts))


def _eval_value(text):
    # Values may contain spaces, so try each space as the end of the value
    # until the text up to it is a valid literal.
    end = 0
    while True:
        end = text.find(' ', end + 1)
        value_text = text if end < 0 else text[:end]
        try:
            value = literal_eval(value_text)
        except (ValueError, TypeError, SyntaxError):
            if end < 0:
                raise ValueError(text)
            continue
        return value, ('' if end < 0 else text[end+1:])


def parseline(line):
    """Given a log line generated by :mod:`mailsender.logging`, return a
    four-tuple of the following:

    #. The log type -- e.g. ``'fd'`` or ``'mail'``
    #. The log ID based on type -- e.g. a file descriptor or a Message-Id
    #. The log operation -- e.g. ``'connect'`` or ``'sent'``
    #. The log data, a dictionary of relevant information

    Parsing of the data stops at the first value that is not a valid literal.

    :param line: The log line to parse, with or without new-line characters.
    :raises: ValueError

    """
    match = line_pattern.match(line)
    if not match:
        raise ValueError(line)
    type, id, op = match.groups()
    remaining = line[match.end(0):].rstrip('\r\n')
    data = {}
    while True:
        key_match = key_pattern.match(remaining)
        if not key_match:
            break
        try:
            value, remaining = _eval_value(remaining[key_match.end(0):])
        except ValueError:
            break
        data[key_match.group(1)] = value
    return type, id, op, data


# vim:et:fdm=marker:sts=4:sw=4:ts=4
