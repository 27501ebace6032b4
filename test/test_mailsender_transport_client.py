import unittest
from socket import error as socket_error

from gevent import Timeout, GreenletExit
from gevent.event import AsyncResult
from gevent.ssl import SSLError

from mailsender.util.deque import BlockingDeque
from mailsender.smtp import ConnectionLost, SmtpError
from mailsender.smtp.reply import Reply
from mailsender.transport import TransportError, DeliveryResult
from mailsender.transport.client import SmtpTransportClient

from mock.socket import MockSocket


class FakeMessage(object):

    def __init__(self, sender, recipients,
                 data=b'From: sender@example.com\r\n\r\ntest test\r\n'):
        self.envelope_sender = sender
        self.recipients = recipients
        self.message_id = '<test.0@example.com>'
        self.data = data

    def flatten(self):
        return self.data


class TestSmtpTransportClient(unittest.TestCase):

    def setUp(self):
        self.address = ('test', 25)
        self.queue = BlockingDeque()
        self.context = object()

    def _client(self, sock, queue=None, **kwargs):
        kwargs.setdefault('ehlo_as', 'there')
        return SmtpTransportClient(self.address, queue or self.queue,
                                   socket_creator=lambda address: sock,
                                   tls_wrapper=sock.tls_wrapper, **kwargs)

    def test_connect(self):
        sock = MockSocket([])
        client = self._client(sock)
        client._connect()
        self.assertIs(sock, client.socket)
        self.assertEqual(self.address, client.client.io.address)

    def test_banner(self):
        sock = MockSocket([('recv', b'220 Welcome\r\n'),
                           ('recv', b'420 Not Welcome\r\n')])
        client = self._client(sock)
        client._connect()
        client._banner()
        with self.assertRaises(TransportError) as cm:
            client._banner()
        self.assertEqual(b'[BANNER]', cm.exception.reply.command)
        self.assertEqual(self.address, cm.exception.reply.address)
        self.assertFalse(cm.exception.is_permanent())

    def test_ehlo(self):
        sock = MockSocket([('send', b'EHLO there\r\n'),
                           ('recv', b'250-Hello\r\n250 TEST\r\n'),
                           ('send', b'EHLO there\r\n'),
                           ('recv', b'420 Goodbye\r\n')])
        client = self._client(sock)
        client._connect()
        client._ehlo()
        self.assertTrue('TEST' in client.client.extensions)
        with self.assertRaises(TransportError):
            client._ehlo()
        sock.assert_done(self)

    def test_ehlo_callable(self):
        sock = MockSocket([('send', b'EHLO test.example.com\r\n'),
                           ('recv', b'250 Hello\r\n')])
        client = self._client(
            sock, ehlo_as=lambda address: address[0] + '.example.com')
        client._connect()
        client._ehlo()
        sock.assert_done(self)

    def test_ehlo_helo_fallback(self):
        sock = MockSocket([('send', b'EHLO there\r\n'),
                           ('recv', b'502 Command not implemented\r\n'),
                           ('send', b'HELO there\r\n'),
                           ('recv', b'250 Hello\r\n')])
        client = self._client(sock)
        client._connect()
        client._ehlo()
        sock.assert_done(self)

    def test_ehlo_helo_fallback_failure(self):
        sock = MockSocket([('send', b'EHLO there\r\n'),
                           ('recv', b'502 Command not implemented\r\n'),
                           ('send', b'HELO there\r\n'),
                           ('recv', b'550 Go away\r\n')])
        client = self._client(sock)
        client._connect()
        with self.assertRaises(TransportError) as cm:
            client._ehlo()
        self.assertEqual(b'HELO', cm.exception.reply.command)
        self.assertTrue(cm.exception.is_permanent())

    def test_starttls(self):
        sock = MockSocket([('send', b'STARTTLS\r\n'),
                           ('recv', b'220 Go ahead\r\n'),
                           ('encrypt', self.context),
                           ('send', b'STARTTLS\r\n'),
                           ('recv', b'420 Stop\r\n')])
        client = self._client(sock, context=self.context, tls_required=True)
        client._connect()
        client._starttls()
        with self.assertRaises(TransportError) as cm:
            client._starttls()
        self.assertEqual(b'STARTTLS', cm.exception.reply.command)
        sock.assert_done(self)

    def test_starttls_not_required(self):
        sock = MockSocket([('send', b'STARTTLS\r\n'),
                           ('recv', b'454 TLS not available\r\n')])
        client = self._client(sock, context=self.context)
        client._connect()
        reply = client._starttls()
        self.assertEqual('454', reply.code)
        sock.assert_done(self)

    def test_handshake_tls_immediately(self):
        sock = MockSocket([('encrypt', self.context),
                           ('recv', b'220 Welcome\r\n'),
                           ('send', b'EHLO there\r\n'),
                           ('recv', b'250 Hello\r\n')])
        client = self._client(sock, context=self.context,
                              tls_immediately=True)
        client._connect()
        client._handshake()
        sock.assert_done(self)

    def test_handshake_starttls(self):
        sock = MockSocket([('recv', b'220 Welcome\r\n'),
                           ('send', b'EHLO there\r\n'),
                           ('recv', b'250-Hello\r\n250 STARTTLS\r\n'),
                           ('send', b'STARTTLS\r\n'),
                           ('recv', b'220 Go ahead\r\n'),
                           ('encrypt', self.context),
                           ('send', b'EHLO there\r\n'),
                           ('recv', b'250 Hello\r\n')])
        client = self._client(sock, context=self.context)
        client._connect()
        client._handshake()
        self.assertFalse('STARTTLS' in client.client.extensions)
        sock.assert_done(self)

    def test_handshake_starttls_refused(self):
        sock = MockSocket([('recv', b'220 Welcome\r\n'),
                           ('send', b'EHLO there\r\n'),
                           ('recv', b'250-Hello\r\n250 STARTTLS\r\n'),
                           ('send', b'STARTTLS\r\n'),
                           ('recv', b'454 TLS not available\r\n')])
        client = self._client(sock, context=self.context)
        client._connect()
        client._handshake()
        sock.assert_done(self)

    def test_handshake_starttls_not_offered(self):
        sock = MockSocket([('recv', b'220 Welcome\r\n'),
                           ('send', b'EHLO there\r\n'),
                           ('recv', b'250 Hello\r\n')])
        client = self._client(sock, context=self.context)
        client._connect()
        client._handshake()
        sock.assert_done(self)

    def test_handshake_starttls_required(self):
        sock = MockSocket([('recv', b'220 Welcome\r\n'),
                           ('send', b'EHLO there\r\n'),
                           ('recv', b'250 Hello\r\n'),
                           ('send', b'STARTTLS\r\n'),
                           ('recv', b'502 Command not implemented\r\n')])
        client = self._client(sock, context=self.context, tls_required=True)
        client._connect()
        with self.assertRaises(TransportError) as cm:
            client._handshake()
        self.assertEqual(b'STARTTLS', cm.exception.reply.command)
        sock.assert_done(self)

    def test_rset(self):
        sock = MockSocket([('send', b'RSET\r\n'),
                           ('recv', b'250 Ok\r\n')])
        client = self._client(sock)
        client._connect()
        client._rset()
        sock.assert_done(self)

    def test_mailfrom(self):
        sock = MockSocket([('send', b'MAIL FROM:<sender>\r\n'),
                           ('recv', b'250 Ok\r\n'),
                           ('send', b'MAIL FROM:<sender>\r\n'),
                           ('recv', b'550 Not Ok\r\n')])
        client = self._client(sock)
        client._connect()
        client._mailfrom('sender', None)
        with self.assertRaises(TransportError) as cm:
            client._mailfrom('sender', None)
        self.assertTrue(cm.exception.is_permanent())
        self.assertEqual(b'MAIL', cm.exception.reply.command)

    def test_rcptto(self):
        sock = MockSocket([('send', b'RCPT TO:<recipient>\r\n'),
                           ('recv', b'250 Ok\r\n')])
        client = self._client(sock)
        client._connect()
        reply = client._rcptto('recipient')
        self.assertEqual('250', reply.code)

    def test_send_message_data(self):
        sock = MockSocket([
            ('send', b'From: sender@example.com\r\n\r\ntest test\r\n.\r\n'),
            ('recv', b'250 Ok\r\n'),
            ('send', b'From: sender@example.com\r\n\r\ntest test\r\n.\r\n'),
            ('recv', b'550 Ok\r\n')])
        data = FakeMessage('sender@example.com', []).flatten()
        client = self._client(sock)
        client._connect()
        client._send_message_data(data)
        with self.assertRaises(TransportError):
            client._send_message_data(data)

    def test_deliver(self):
        result = AsyncResult()
        message = FakeMessage('sender@example.com', ['rcpt@example.com'])
        sock = MockSocket([
            ('send', b'EHLO there\r\n'),
            ('recv', b'250 Hello\r\n'),
            ('send', b'MAIL FROM:<sender@example.com>\r\n'),
            ('recv', b'250 Ok\r\n'),
            ('send', b'RCPT TO:<rcpt@example.com>\r\n'),
            ('recv', b'250 Ok\r\n'),
            ('send', b'DATA\r\n'),
            ('recv', b'354 Go ahead\r\n'),
            ('send', b'From: sender@example.com\r\n\r\ntest test\r\n.\r\n'),
            ('recv', b'250 Ok\r\n')])
        client = self._client(sock)
        client._connect()
        client._ehlo()
        client._deliver(result, message)
        delivered = result.get_nowait()
        self.assertIsInstance(delivered, DeliveryResult)
        self.assertEqual('<test.0@example.com>', delivered.message_id)
        self.assertEqual('sender@example.com', delivered.sender)
        self.assertEqual(['rcpt@example.com'], delivered.accepted)
        self.assertEqual({}, delivered.rejected)
        self.assertEqual(Reply('250', 'Ok'), delivered.reply)
        sock.assert_done(self)

    def test_deliver_size(self):
        result = AsyncResult()
        message = FakeMessage('sender@example.com', ['rcpt@example.com'])
        sock = MockSocket([
            ('send', b'EHLO there\r\n'),
            ('recv', b'250-Hello\r\n250 SIZE 1000\r\n'),
            ('send', b'MAIL FROM:<sender@example.com> SIZE=39\r\n'),
            ('recv', b'250 Ok\r\n'),
            ('send', b'RCPT TO:<rcpt@example.com>\r\n'),
            ('recv', b'250 Ok\r\n'),
            ('send', b'DATA\r\n'),
            ('recv', b'354 Go ahead\r\n'),
            ('send', b'From: sender@example.com\r\n\r\ntest test\r\n.\r\n'),
            ('recv', b'250 Ok\r\n')])
        client = self._client(sock)
        client._connect()
        client._ehlo()
        client._deliver(result, message)
        self.assertEqual(['rcpt@example.com'], result.get_nowait().accepted)
        sock.assert_done(self)

    def test_deliver_too_big(self):
        result = AsyncResult()
        message = FakeMessage('sender@example.com', ['rcpt@example.com'])
        sock = MockSocket([
            ('send', b'EHLO there\r\n'),
            ('recv', b'250-Hello\r\n250 SIZE 10\r\n'),
            ('send', b'RSET\r\n'),
            ('recv', b'250 Ok\r\n')])
        client = self._client(sock)
        client._connect()
        client._ehlo()
        client._deliver(result, message)
        with self.assertRaises(TransportError) as cm:
            result.get_nowait()
        self.assertEqual('552', cm.exception.reply.code)
        self.assertEqual(b'[SIZE]', cm.exception.reply.command)
        self.assertTrue(cm.exception.is_permanent())
        sock.assert_done(self)

    def test_deliver_badpipeline(self):
        result = AsyncResult()
        message = FakeMessage('sender@example.com', ['rcpt@example.com'])
        sock = MockSocket([
            ('send', b'EHLO there\r\n'),
            ('recv', b'250-Hello\r\n250 PIPELINING\r\n'),
            ('send', b'MAIL FROM:<sender@example.com>\r\n'
                     b'RCPT TO:<rcpt@example.com>\r\nDATA\r\n'),
            ('recv', b'550 Not ok\r\n250 Ok\r\n354 Go ahead\r\n'),
            ('send', b'.\r\nRSET\r\n'),
            ('recv', b'550 Yikes\r\n250 Ok\r\n')])
        client = self._client(sock)
        client._connect()
        client._ehlo()
        client._deliver(result, message)
        with self.assertRaises(TransportError) as cm:
            result.get_nowait()
        self.assertEqual(b'MAIL', cm.exception.reply.command)
        self.assertTrue(cm.exception.is_permanent())
        sock.assert_done(self)

    def test_deliver_baddata(self):
        result = AsyncResult()
        message = FakeMessage('sender@example.com', ['rcpt@example.com'])
        sock = MockSocket([
            ('send', b'EHLO there\r\n'),
            ('recv', b'250-Hello\r\n250 PIPELINING\r\n'),
            ('send', b'MAIL FROM:<sender@example.com>\r\n'
                     b'RCPT TO:<rcpt@example.com>\r\nDATA\r\n'),
            ('recv', b'250 Ok\r\n250 Ok\r\n354 Go ahead\r\n'),
            ('send', b'From: sender@example.com\r\n\r\ntest test\r\n.\r\n'),
            ('recv', b'450 Yikes\r\n'),
            ('send', b'RSET\r\n'),
            ('recv', b'250 Ok\r\n')])
        client = self._client(sock)
        client._connect()
        client._ehlo()
        client._deliver(result, message)
        with self.assertRaises(TransportError) as cm:
            result.get_nowait()
        self.assertEqual(b'[SEND_DATA]', cm.exception.reply.command)
        self.assertFalse(cm.exception.is_permanent())
        sock.assert_done(self)

    def test_deliver_badrcpts(self):
        result = AsyncResult()
        message = FakeMessage('sender@example.com', ['rcpt@example.com'])
        sock = MockSocket([
            ('send', b'EHLO there\r\n'),
            ('recv', b'250-Hello\r\n250 PIPELINING\r\n'),
            ('send', b'MAIL FROM:<sender@example.com>\r\n'
                     b'RCPT TO:<rcpt@example.com>\r\nDATA\r\n'),
            ('recv', b'250 Ok\r\n550 5.1.1 No such user\r\n'
                     b'354 Go ahead\r\n'),
            ('send', b'.\r\nRSET\r\n'),
            ('recv', b'550 Yikes\r\n250 Ok\r\n')])
        client = self._client(sock)
        client._connect()
        client._ehlo()
        client._deliver(result, message)
        with self.assertRaises(TransportError) as cm:
            result.get_nowait()
        self.assertEqual('550', cm.exception.reply.code)
        self.assertEqual('5.1.1 No such user', cm.exception.reply.message)
        self.assertEqual(b'RCPT', cm.exception.reply.command)
        sock.assert_done(self)

    def test_deliver_partial_rcpts(self):
        result = AsyncResult()
        message = FakeMessage('sender@example.com',
                              ['rcpt1@example.com', 'rcpt2@example.com'])
        sock = MockSocket([
            ('send', b'EHLO there\r\n'),
            ('recv', b'250-Hello\r\n250 PIPELINING\r\n'),
            ('send', b'MAIL FROM:<sender@example.com>\r\n'
                     b'RCPT TO:<rcpt1@example.com>\r\n'
                     b'RCPT TO:<rcpt2@example.com>\r\nDATA\r\n'),
            ('recv', b'250 Ok\r\n250 Ok\r\n550 No such user\r\n'
                     b'354 Go ahead\r\n'),
            ('send', b'From: sender@example.com\r\n\r\ntest test\r\n.\r\n'),
            ('recv', b'250 Ok\r\n')])
        client = self._client(sock)
        client._connect()
        client._ehlo()
        client._deliver(result, message)
        delivered = result.get_nowait()
        self.assertEqual(['rcpt1@example.com'], delivered.accepted)
        self.assertEqual(['rcpt2@example.com'], list(delivered.rejected))
        rejection = delivered.rejected['rcpt2@example.com']
        self.assertIsInstance(rejection, TransportError)
        self.assertEqual('550', rejection.reply.code)
        sock.assert_done(self)

    def test_deliver_rset_exception(self):
        result = AsyncResult()
        message = FakeMessage('sender@example.com', ['rcpt@example.com'])
        sock = MockSocket([
            ('send', b'EHLO there\r\n'),
            ('recv', b'250-Hello\r\n250 PIPELINING\r\n'),
            ('send', b'MAIL FROM:<sender@example.com>\r\n'
                     b'RCPT TO:<rcpt@example.com>\r\nDATA\r\n'),
            ('recv', b'250 Ok\r\n250 Ok\r\n450 No!\r\n'),
            ('send', b'RSET\r\n'),
            ('recv', ConnectionLost())])
        client = self._client(sock)
        client._connect()
        client._ehlo()
        with self.assertRaises(ConnectionLost):
            client._deliver(result, message)
        with self.assertRaises(TransportError):
            result.get_nowait()

    def test_deliver_conversion_failure(self):
        result = AsyncResult()
        message = FakeMessage('s\xe9nder@example.com', ['rcpt@example.com'])
        sock = MockSocket([
            ('send', b'EHLO there\r\n'),
            ('recv', b'250-Hello\r\n250 PIPELINING\r\n'),
            ('send', b'RSET\r\n'),
            ('recv', b'250 Ok\r\n')])
        client = self._client(sock)
        client._connect()
        client._ehlo()
        client._deliver(result, message)
        with self.assertRaises(TransportError) as cm:
            result.get_nowait()
        self.assertEqual('553', cm.exception.reply.code)
        self.assertEqual(b'MAIL', cm.exception.reply.command)
        self.assertTrue(cm.exception.is_permanent())
        sock.assert_done(self)

    def test_deliver_smtputf8(self):
        result = AsyncResult()
        message = FakeMessage('s\xe9nder@example.com', ['rcpt@example.com'])
        sock = MockSocket([
            ('send', b'EHLO there\r\n'),
            ('recv', b'250-Hello\r\n250-PIPELINING\r\n250 SMTPUTF8\r\n'),
            ('send', b'MAIL FROM:<s\xc3\xa9nder@example.com> SMTPUTF8\r\n'
                     b'RCPT TO:<rcpt@example.com>\r\nDATA\r\n'),
            ('recv', b'250 Ok\r\n250 Ok\r\n354 Go ahead\r\n'),
            ('send', b'From: sender@example.com\r\n\r\ntest test\r\n.\r\n'),
            ('recv', b'250 Ok\r\n')])
        client = self._client(sock)
        client._connect()
        client._ehlo()
        client._deliver(result, message)
        self.assertEqual(['rcpt@example.com'], result.get_nowait().accepted)
        sock.assert_done(self)

    def test_deliver_smtputf8_recipient(self):
        result = AsyncResult()
        message = FakeMessage('sender@example.com', ['b\xfc@example.com'])
        sock = MockSocket([
            ('send', b'EHLO there\r\n'),
            ('recv', b'250-Hello\r\n250-PIPELINING\r\n250 SMTPUTF8\r\n'),
            ('send', b'MAIL FROM:<sender@example.com> SMTPUTF8\r\n'
                     b'RCPT TO:<b\xc3\xbc@example.com>\r\nDATA\r\n'),
            ('recv', b'250 Ok\r\n250 Ok\r\n354 Go ahead\r\n'),
            ('send', b'From: sender@example.com\r\n\r\ntest test\r\n.\r\n'),
            ('recv', b'250 Ok\r\n')])
        client = self._client(sock)
        client._connect()
        client._ehlo()
        client._deliver(result, message)
        self.assertEqual(['b\xfc@example.com'], result.get_nowait().accepted)
        sock.assert_done(self)

    def test_deliver_smtputf8_recipient_unsupported(self):
        result = AsyncResult()
        message = FakeMessage('sender@example.com', ['b\xfc@example.com'])
        sock = MockSocket([
            ('send', b'EHLO there\r\n'),
            ('recv', b'250-Hello\r\n250 PIPELINING\r\n'),
            ('send', b'RSET\r\n'),
            ('recv', b'250 Ok\r\n')])
        client = self._client(sock)
        client._connect()
        client._ehlo()
        client._deliver(result, message)
        with self.assertRaises(TransportError) as cm:
            result.get_nowait()
        self.assertEqual('553', cm.exception.reply.code)
        self.assertEqual(b'MAIL', cm.exception.reply.command)
        sock.assert_done(self)

    def test_disconnect(self):
        sock = MockSocket([('send', b'QUIT\r\n'),
                           ('recv', b'221 Goodbye\r\n'),
                           ('close', None)])
        client = self._client(sock)
        client._connect()
        client._disconnect()
        sock.assert_done(self)

    def test_disconnect_failure(self):
        sock = MockSocket([('send', b'QUIT\r\n'),
                           ('recv', socket_error(None, None)),
                           ('close', None)])
        client = self._client(sock)
        client._connect()
        client._disconnect()
        sock.assert_done(self)

    def test_run(self):
        result = AsyncResult()
        message = FakeMessage('sender@example.com', ['rcpt@example.com'])
        self.queue.append((result, message))
        sock = MockSocket([
            ('recv', b'220 Welcome\r\n'),
            ('send', b'EHLO there\r\n'),
            ('recv', b'250-Hello\r\n250 PIPELINING\r\n'),
            ('send', b'MAIL FROM:<sender@example.com>\r\n'
                     b'RCPT TO:<rcpt@example.com>\r\nDATA\r\n'),
            ('recv', b'250 Ok\r\n250 Ok\r\n354 Go ahead\r\n'),
            ('send', b'From: sender@example.com\r\n\r\ntest test\r\n.\r\n'),
            ('recv', b'250 Ok\r\n'),
            ('send', b'QUIT\r\n'),
            ('recv', b'221 Goodbye\r\n'),
            ('close', None)])
        client = self._client(sock)
        client._run()
        self.assertEqual(Reply('250', 'Ok'), result.get_nowait().reply)
        sock.assert_done(self)

    def test_run_multiple(self):
        result1 = AsyncResult()
        result2 = AsyncResult()
        message1 = FakeMessage('sender1@example.com', ['rcpt1@example.com'])
        message2 = FakeMessage('sender2@example.com', ['rcpt2@example.com'])
        self.queue.append((result1, message1))
        self.queue.append((result2, message2))
        sock = MockSocket([
            ('recv', b'220 Welcome\r\n'),
            ('send', b'EHLO there\r\n'),
            ('recv', b'250-Hello\r\n250 PIPELINING\r\n'),
            ('send', b'MAIL FROM:<sender1@example.com>\r\n'
                     b'RCPT TO:<rcpt1@example.com>\r\nDATA\r\n'),
            ('recv', b'250 Ok\r\n250 Ok\r\n354 Go ahead\r\n'),
            ('send', b'From: sender@example.com\r\n\r\ntest test\r\n.\r\n'),
            ('recv', b'250 Ok\r\n'),
            ('send', b'MAIL FROM:<sender2@example.com>\r\n'
                     b'RCPT TO:<rcpt2@example.com>\r\nDATA\r\n'),
            ('recv', b'250 Ok\r\n250 Ok\r\n354 Go ahead\r\n'),
            ('send', b'From: sender@example.com\r\n\r\ntest test\r\n.\r\n'),
            ('recv', b'250 Ok\r\n'),
            ('send', b'QUIT\r\n'),
            ('recv', b'221 Goodbye\r\n'),
            ('close', None)])
        client = self._client(sock, idle_timeout=0.0)
        client._run()
        self.assertEqual(['rcpt1@example.com'], result1.get_nowait().accepted)
        self.assertEqual(['rcpt2@example.com'], result2.get_nowait().accepted)
        sock.assert_done(self)

    def test_run_random_exception(self):
        result = AsyncResult()
        message = FakeMessage('sender@example.com', ['rcpt@example.com'])
        self.queue.append((result, message))
        sock = MockSocket([('recv', ValueError('test error')),
                           ('send', b'QUIT\r\n'),
                           ('recv', b'221 Goodbye\r\n'),
                           ('close', None)])
        client = self._client(sock)
        with self.assertRaises(ValueError):
            client._run()
        with self.assertRaises(ValueError):
            result.get_nowait()

    def test_run_connection_refused(self):
        result = AsyncResult()
        message = FakeMessage('sender@example.com', ['rcpt@example.com'])
        self.queue.append((result, message))

        def socket_creator(address):
            raise ConnectionRefusedError(111, 'Connection refused')
        client = SmtpTransportClient(self.address, self.queue,
                                     socket_creator=socket_creator)
        client._run()
        with self.assertRaises(TransportError) as cm:
            result.get_nowait()
        self.assertEqual('451', cm.exception.reply.code)
        self.assertEqual(b'[CONNECT]', cm.exception.reply.command)
        self.assertEqual(self.address, cm.exception.reply.address)
        self.assertIsInstance(cm.exception.__cause__, ConnectionRefusedError)

    def test_run_socket_error(self):
        result = AsyncResult()
        message = FakeMessage('sender@example.com', ['rcpt@example.com'])
        self.queue.append((result, message))
        sock = MockSocket([('recv', socket_error(None, None)),
                           ('send', b'QUIT\r\n'),
                           ('recv', b'221 Goodbye\r\n'),
                           ('close', None)])
        client = self._client(sock)
        client._run()
        with self.assertRaises(TransportError) as cm:
            result.get_nowait()
        self.assertEqual('451', cm.exception.reply.code)
        self.assertEqual(b'[BANNER]', cm.exception.reply.command)
        sock.assert_done(self)

    def test_run_smtperror(self):
        result = AsyncResult()
        message = FakeMessage('sender@example.com', ['rcpt@example.com'])
        self.queue.append((result, message))
        sock = MockSocket([('recv', SmtpError('test error')),
                           ('send', b'QUIT\r\n'),
                           ('recv', b'221 Goodbye\r\n'),
                           ('close', None)])
        client = self._client(sock)
        client._run()
        with self.assertRaises(TransportError) as cm:
            result.get_nowait()
        self.assertEqual('421', cm.exception.reply.code)
        self.assertEqual('4.3.0 test error', cm.exception.reply.message)
        self.assertFalse(cm.exception.is_permanent())

    def test_run_timeout(self):
        result = AsyncResult()
        message = FakeMessage('sender@example.com', ['rcpt@example.com'])
        self.queue.append((result, message))
        sock = MockSocket([('recv', Timeout(0.0)),
                           ('send', b'QUIT\r\n'),
                           ('recv', b'221 Goodbye\r\n'),
                           ('close', None)])
        client = self._client(sock)
        client._run()
        with self.assertRaises(TransportError) as cm:
            result.get_nowait()
        self.assertEqual('421', cm.exception.reply.code)
        self.assertEqual('4.4.2 Connection timed out',
                         cm.exception.reply.message)

    def test_run_tls_failure(self):
        result = AsyncResult()
        message = FakeMessage('sender@example.com', ['rcpt@example.com'])
        self.queue.append((result, message))
        sock = MockSocket([('send', b'QUIT\r\n'),
                           ('recv', b'221 Goodbye\r\n'),
                           ('close', None)])

        def tls_wrapper(socket, context):
            raise SSLError('certificate verify failed')
        client = SmtpTransportClient(self.address, self.queue,
                                     socket_creator=lambda address: sock,
                                     context=self.context,
                                     tls_immediately=True,
                                     tls_wrapper=tls_wrapper)
        client._run()
        with self.assertRaises(TransportError) as cm:
            result.get_nowait()
        self.assertEqual('421', cm.exception.reply.code)
        self.assertEqual('4.7.0 TLS negotiation failed',
                         cm.exception.reply.message)
        self.assertEqual(b'[TLS]', cm.exception.reply.command)
        self.assertIsInstance(cm.exception.__cause__, SSLError)
        sock.assert_done(self)

    def test_run_banner_failure(self):
        result = AsyncResult()
        message = FakeMessage('sender@example.com', ['rcpt@example.com'])
        self.queue.append((result, message))
        sock = MockSocket([('recv', b'520 Not Welcome\r\n'),
                           ('send', b'QUIT\r\n'),
                           ('recv', b'221 Goodbye\r\n'),
                           ('close', None)])
        client = self._client(sock)
        client._run()
        with self.assertRaises(TransportError) as cm:
            result.get_nowait()
        self.assertTrue(cm.exception.is_permanent())

    def test_run_killed(self):
        result = AsyncResult()
        message = FakeMessage('sender@example.com', ['rcpt@example.com'])
        self.queue.append((result, message))
        sock = MockSocket([('recv', GreenletExit()),
                           ('close', None)])
        client = self._client(sock)
        with self.assertRaises(GreenletExit):
            client._run()
        with self.assertRaises(TransportError) as cm:
            result.get_nowait()
        self.assertEqual('451', cm.exception.reply.code)
        self.assertEqual(b'[BANNER]', cm.exception.reply.command)
        self.assertEqual(self.address, cm.exception.reply.address)
        self.assertIsInstance(cm.exception.__cause__, GreenletExit)
        sock.assert_done(self)

    def test_run_nomessages(self):
        client = SmtpTransportClient(self.address, self.queue, idle_timeout=0)
        client._run()


# vim:et:fdm=marker:sts=4:sw=4:ts=4
