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

import re

__all__ = ['DataSender']

leading_dot_pattern = re.compile(br'^\.', re.M)


class DataSender(object):
    """Produces the message data of a DATA command: every line starting with
    ``.`` gets an extra ``.`` and the ``.`` end marker line is appended.

    :param parts: The message data, as one or more bytestrings.

    """

    def __init__(self, *parts):
        self.parts = [part for part in parts if part]

    def _end_marker(self):
        if not self.parts or self.parts[-1].endswith(b'\r\n'):
            return b'.\r\n'
        return b'\r\n.\r\n'

    def __iter__(self):
        line_start = True
        for part in self.parts:
            stuffed = leading_dot_pattern.sub(b'..', part)
            if not line_start and part[0:1] == b'.':
                stuffed = stuffed[1:]
            yield stuffed
            line_start = part.endswith(b'\n')
        yield self._end_marker()

    def send(self, io):
        for piece in self:
            io.buffered_send(piece)


# vim:et:fdm=marker:sts=4:sw=4:ts=4
