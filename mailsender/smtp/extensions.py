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


"""Tracks the SMTP extensions a server advertises in its EHLO reply."""

import re

__all__ = ['Extensions']

keyword_pattern = re.compile(r'^\s*([a-zA-Z0-9][a-zA-Z0-9-]*)\s*(.*?)\s*$')


class Extensions(object):
    """The extension keywords offered by the server, e.g. ``PIPELINING``,
    each with its optional parameter string, e.g. ``SIZE 10240000``. Lookups
    are case-insensitive.

    """

    def __init__(self):
        self.extensions = {}

    def reset(self):
        """Forgets all known extensions, as required after STARTTLS."""
        self.extensions = {}

    def __contains__(self, ext):
        return ext.upper() in self.extensions

    def add(self, ext, param=None):
        self.extensions[ext.upper()] = param

    def getparam(self, ext):
        """Gets the parameter the server gave with an extension, or ``None``
        if the extension is unknown or has no parameter.

        """
        return self.extensions.get(ext.upper())

    @property
    def max_size(self):
        """The message size limit given with ``SIZE``, or ``None`` when the
        server gave no usable limit. A limit of ``0`` also means none.

        """
        try:
            return int(self.getparam('SIZE')) or None
        except (TypeError, ValueError):
            return None

    def parse_string(self, string):
        """Records every extension listed in the message of a successful EHLO
        reply, given without its reply codes.

        :param string: The reply message to parse.
        :returns: The first line of the reply, the server's free-form
                  greeting.

        """
        lines = string.splitlines() or [string]
        for line in lines[1:]:
            match = keyword_pattern.match(line)
            if match:
                self.add(match.group(1), match.group(2) or None)
        return lines[0]


# vim:et:fdm=marker:sts=4:sw=4:ts=4
