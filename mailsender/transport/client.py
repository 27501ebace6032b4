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

from socket import getfqdn, error as socket_error
from functools import wraps

from gevent import Timeout, GreenletExit
from gevent.socket import create_connection
from gevent.ssl import SSLError

from mailsender.smtp import SmtpError
from mailsender.smtp.reply import Reply, timed_out, connection_failed, \
    tls_failure, message_too_big, conversion_failed, aborted
from mailsender.smtp.client import Client
from mailsender import logging
from .pool import TransportPoolClient
from . import TransportError, DeliveryResult

__all__ = ['SmtpTransportClient']

log = logging.getSocketLogger(__name__)
hostname = getfqdn()


def current_command(cmd):
    """Names the step a method performs. If the method raises, the name is
    left in place so the failure can be attributed to it.

    """
    def deco(step):
        @wraps(step)
        def labelled(self, *args, **kwargs):
            outer, self.current_command = self.current_command, cmd
            ret = step(self, *args, **kwargs)
            self.current_command = outer
            return ret
        return labelled
    return deco


class SmtpTransportClient(TransportPoolClient):
    """A single connection to the mail server, delivering the messages it
    polls from its pool.

    :param address: The ``(host, port)`` of the mail server.
    :param queue: The queue on which delivery requests will be received.
    :param socket_creator: Function taking the address and returning a
                           connected socket.
    :param ehlo_as: The EHLO identity, or a function taking the address and
                    returning it.
    :param context: The :class:`~gevent.ssl.SSLContext` for encryption, or
                    ``None`` to never encrypt.
    :param tls_immediately: Encrypt as soon as the socket is connected,
                            instead of negotiating with STARTTLS.
    :param tls_required: Fail delivery if STARTTLS cannot be negotiated.

    """

    _client_class = Client

    def __init__(self, address, queue, socket_creator=None, ehlo_as=None,
                 context=None, tls_immediately=False,
                 tls_required=False, tls_wrapper=None,
                 connect_timeout=None, command_timeout=None,
                 data_timeout=None, idle_timeout=None):
        super(SmtpTransportClient, self).__init__(queue, idle_timeout)
        self.address = address
        self.socket_creator = socket_creator or create_connection
        self.socket = None
        self.client = None
        self.ehlo_as = ehlo_as or hostname
        self.context = context
        self.tls_immediately = tls_immediately
        self.tls_required = tls_required
        self.tls_wrapper = tls_wrapper
        self.connect_timeout = connect_timeout
        self.command_timeout = command_timeout
        self.data_timeout = data_timeout or command_timeout
        self.current_command = None

    def _error(self, reply):
        if reply.address is None:
            reply.address = self.address
        return TransportError(reply)

    @current_command(b'[CONNECT]')
    def _connect(self):
        with Timeout(self.connect_timeout):
            self.socket = self.socket_creator(self.address)
        log.connect(self.socket, self.address)
        self.client = self._client_class(self.socket, self.tls_wrapper,
                                         self.address)

    @current_command(b'[TLS]')
    def _encrypt(self):
        with Timeout(self.connect_timeout):
            self.client.encrypt(self.context)

    @current_command(b'[BANNER]')
    def _banner(self):
        with Timeout(self.command_timeout):
            banner = self.client.get_banner()
        if banner.is_error():
            raise self._error(banner)

    @current_command(b'EHLO')
    def _ehlo(self):
        try:
            ehlo_as = self.ehlo_as(self.address)
        except TypeError:
            ehlo_as = self.ehlo_as
        with Timeout(self.command_timeout):
            ehlo = self.client.ehlo(ehlo_as)
            if ehlo.code and ehlo.code[0] == '5':
                ehlo = self.client.helo(ehlo_as)
        if ehlo.is_error():
            raise self._error(ehlo)

    @current_command(b'STARTTLS')
    def _starttls(self):
        with Timeout(self.command_timeout):
            starttls = self.client.starttls(self.context)
        if starttls.is_error() and self.tls_required:
            raise self._error(starttls)
        return starttls

    def _handshake(self):
        if self.context and self.tls_immediately:
            self._encrypt()
        self._banner()
        self._ehlo()
        if self.context and not self.tls_immediately:
            if self.tls_required or 'STARTTLS' in self.client.extensions:
                starttls = self._starttls()
                if starttls.code == '220':
                    self._ehlo()

    @current_command(b'RSET')
    def _rset(self):
        with Timeout(self.command_timeout):
            self.client.rset()

    def _synthesize(self, reply, command=None):
        command = command or self.current_command
        return Reply(command=command, address=self.address).copy(reply)

    def _conversion_error(self, command):
        return self._error(self._synthesize(conversion_failed, command))

    @current_command(b'MAIL')
    def _mailfrom(self, sender, data_size, smtputf8=False):
        if smtputf8 and 'SMTPUTF8' not in self.client.extensions:
            raise self._conversion_error(b'MAIL')
        try:
            with Timeout(self.command_timeout):
                mailfrom = self.client.mailfrom(sender, data_size, smtputf8)
        except UnicodeEncodeError:
            raise self._conversion_error(b'MAIL')
        if mailfrom and mailfrom.is_error():
            raise self._error(mailfrom)
        return mailfrom

    @current_command(b'RCPT')
    def _rcptto(self, rcpt):
        try:
            with Timeout(self.command_timeout):
                return self.client.rcptto(rcpt)
        except UnicodeEncodeError:
            raise self._conversion_error(b'RCPT')

    @current_command(b'DATA')
    def _data(self):
        with Timeout(self.command_timeout):
            return self.client.data()

    def _check_size(self, data):
        max_size = self.client.extensions.max_size
        if max_size and len(data) > max_size:
            raise self._error(self._synthesize(message_too_big, b'[SIZE]'))

    def _check_replies(self, mailfrom, rcpttos, data):
        if mailfrom.is_error():
            raise self._error(mailfrom)
        for rcptto in rcpttos:
            if not rcptto.is_error():
                break
        else:
            raise self._error(rcpttos[0])
        if data.is_error():
            raise self._error(data)

    @current_command(b'[SEND_DATA]')
    def _send_empty_data(self):
        with Timeout(self.data_timeout):
            self.client.send_empty_data()

    @current_command(b'[SEND_DATA]')
    def _send_message_data(self, data):
        with Timeout(self.data_timeout):
            send_data = self.client.send_data(data)
            self.client._flush_pipeline()
        if send_data.is_error():
            raise self._error(send_data)
        return send_data

    def _send_envelope(self, rcpt_results, message, data):
        data_reply = None
        addresses = [message.envelope_sender] + list(message.recipients)
        smtputf8 = not all(addr.isascii() for addr in addresses)
        mailfrom = self._mailfrom(message.envelope_sender, len(data),
                                  smtputf8)
        rcpttos = [self._rcptto(rcpt) for rcpt in message.recipients]
        try:
            data_reply = self._data()
            self._check_replies(mailfrom, rcpttos, data_reply)
        except TransportError:
            if data_reply and not data_reply.is_error():
                self._send_empty_data()
            raise
        for rcpt, rcpt_reply in zip(message.recipients, rcpttos):
            if rcpt_reply.is_error():
                rcpt_results[rcpt] = self._error(rcpt_reply)

    def _deliver(self, result, message):
        rcpt_results = dict.fromkeys(message.recipients)
        try:
            data = message.flatten()
            self._check_size(data)
            self._send_envelope(rcpt_results, message, data)
            reply = self._send_message_data(data)
        except TransportError as e:
            result.set_exception(e)
            self._rset()
        else:
            accepted = [rcpt for rcpt in message.recipients
                        if rcpt_results[rcpt] is None]
            rejected = dict((rcpt, exc) for rcpt, exc in rcpt_results.items()
                            if exc is not None)
            result.set(DeliveryResult(message, accepted, rejected, reply))

    def _check_server_timeout(self):
        try:
            if self.client.has_reply_waiting():
                with Timeout(self.command_timeout):
                    self.client.get_reply()
                return True
        except SmtpError:
            return True
        return False

    def _disconnect(self, quit=True):
        try:
            if quit:
                with Timeout(self.command_timeout):
                    self.client.quit()
        except (Timeout, Exception):
            pass
        finally:
            if self.client:
                self.client.io.close()

    def _get_error_reply(self, exc):
        last_error = self.client and self.client.last_error
        if last_error and last_error.code == '421':
            return last_error
        return Reply('421', '4.3.0 '+str(exc),
                     command=self.current_command, address=self.address)

    def _fail(self, result, reply, exc):
        if not result.ready():
            error = self._error(reply)
            error.__cause__ = exc
            result.set_exception(error)

    def _run(self):
        result, message = self.poll()
        if not result:
            return
        reraise = True
        quit = True
        try:
            self._connect()
            self._handshake()
            while result:
                if self._check_server_timeout():
                    self.queue.appendleft((result, message))
                    break
                self._deliver(result, message)
                if self.idle_timeout is None:
                    break
                result, message = self.poll()
        except TransportError as e:
            result.set_exception(e)
        except SmtpError as e:
            self._fail(result, self._get_error_reply(e), e)
        except Timeout as e:
            self._fail(result, self._synthesize(timed_out), e)
        except SSLError as e:
            self._fail(result, self._synthesize(tls_failure), e)
        except socket_error as e:
            self._fail(result, self._synthesize(connection_failed), e)
        except GreenletExit as e:
            self._fail(result, self._synthesize(aborted), e)
            quit = False
            raise
        except Exception as e:
            if not result.ready():
                result.set_exception(e)
            reraise = False
            raise
        finally:
            try:
                self._disconnect(quit)
            except Exception:
                if reraise:
                    raise


# vim:et:fdm=marker:sts=4:sw=4:ts=4
