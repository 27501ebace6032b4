# Copyright (c) 2016 Ian C. Good
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


"""Package containing small utilities that didn't really belong anywhere
else.

"""

from gevent import socket

__all__ = ['check_argtype', 'build_ipv4_socket_creator',
           'create_connection_ipv4']


def check_argtype(val, type_, name, or_none=False):
    """Checks the type of an argument.

    :param val: The argument value.
    :param type_: type or tuple of types the value must be.
    :param name: The argument name, used in the error message.
    :param or_none: If True, ``None`` is also accepted.
    :raises: TypeError

    """
    if not (isinstance(val, type_) or (or_none and val is None)):
        raise TypeError('{} should be of type {}, got {}'.format(
            name, type_, type(val)))


def build_ipv4_socket_creator(only_ports=None):
    """Returns a function that will act like
    :py:func:`socket.create_connection` but only using IPv4 addresses. This
    function can be used as the ``socket_creator`` option, e.g. when
    ``localhost`` resolves to ``::1`` but the mail server only listens on
    ``127.0.0.1``.

    :param only_ports: If given, can be a list to limit which ports are
                       restricted to IPv4. Connections to all other ports may
                       be IPv6.

    """
    def socket_creator(*args, **kwargs):
        return create_connection_ipv4(*args, only_ports=only_ports, **kwargs)
    return socket_creator


def create_connection_ipv4(address, timeout=None, source_address=None,
                           only_ports=None):
    """Attempts to mimick to :py:func:`socket.create_connection`, but
    connections are only made to IPv4 addresses.

    :param only_ports: If given, can be a list to limit which ports are
                       restricted to IPv4.
    :raises: :py:exc:`OSError`

    """
    host, port = address
    if only_ports and port not in only_ports:
        return socket.create_connection(address, timeout, source_address)
    last_exc = None
    for _, _, _, _, sockaddr in socket.getaddrinfo(host, port,
                                                   socket.AF_INET):
        try:
            return socket.create_connection(sockaddr, timeout, source_address)
        except socket.error as exc:
            last_exc = exc
    if last_exc is not None:
        raise last_exc
    raise socket.error('getaddrinfo returns an empty list')


# vim:et:fdm=marker:sts=4:sw=4:ts=4
