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

"""Implements a bounded pool of client connections to one mail server. Each
submission is queued, and an idle client in the pool picks it up; if none is
idle, a new client is started unless the pool is full.

"""

from gevent import Greenlet, Timeout
from gevent.event import AsyncResult

from mailsender.smtp.reply import Reply, aborted
from mailsender.util.deque import BlockingDeque
from . import TransportError

__all__ = ['TransportPool', 'TransportPoolClient']


class TransportPool(object):
    """Base class for transports that keep a pool of outbound clients.

    :param pool_size: At most this many simultaneous connections will be open
                      to the server. If this limit is reached and no
                      connections are idle, submissions wait in the queue.

    """

    def __init__(self, pool_size=None):
        super(TransportPool, self).__init__()
        self.pool = set()
        self.pool_size = pool_size

        #: This attribute holds the queue object for providing delivery
        #: requests to idle clients in the pool.
        self.queue = BlockingDeque()

    def kill(self):
        """Stops every client in the pool, closing their connections. Every
        delivery request still waiting in the queue, or in progress on a
        client, fails with a |TransportError|.

        """
        for result, _ in self.queue.drain():
            reply = Reply(command=b'[QUEUE]').copy(aborted)
            result.set_exception(TransportError(reply))
        for client in list(self.pool):
            client.kill()

    def _remove_client(self, client):
        self.pool.discard(client)
        if len(self.queue) > 0 and not self.pool:
            self._add_client()

    def _add_client(self):
        client = self.add_client()
        client.queue = self.queue
        client.start()
        client.link(self._remove_client)
        self.pool.add(client)

    def _check_idle(self):
        for client in self.pool:
            if client.idle:
                return
        if not self.pool_size or len(self.pool) < self.pool_size:
            self._add_client()

    def add_client(self):
        """Sub-classes must override this method to create and return a new
        :class:`TransportPoolClient` object that will poll for delivery
        requests.

        :rtype: :class:`TransportPoolClient`

        """
        raise NotImplementedError()

    def enqueue(self, message):
        """Queues ``message`` for delivery without waiting for the outcome.

        :param message: The |Message| to deliver.
        :returns: A :class:`~gevent.event.AsyncResult` that will hold the
                  |DeliveryResult|, or the exception of a failed delivery.

        """
        self._check_idle()
        result = AsyncResult()
        self.queue.append((result, message))
        return result

    def attempt(self, message):
        """Delivers ``message``, blocking the calling greenlet until the
        server accepts or refuses it.

        :param message: The |Message| to deliver.
        :rtype: |DeliveryResult|
        :raises: |TransportError|

        """
        return self.enqueue(message).get()


class TransportPoolClient(Greenlet):
    """Base class for the clients handling delivery requests in a
    :class:`TransportPool`.

    :param queue: The queue on which delivery requests will be received.
    :param idle_timeout: If the client can handle multiple delivery requests
                         on one connection, this is the timeout in seconds
                         that a client will wait for subsequent requests.

    """

    def __init__(self, queue, idle_timeout=None):
        super(TransportPoolClient, self).__init__()
        self.idle = False
        self.queue = queue
        self.idle_timeout = idle_timeout

    def poll(self):
        """Blocks until a delivery request is received from the pool.

        :returns: A tuple containing the :class:`~gevent.event.AsyncResult`
                  and the |Message| that make up a delivery request. If no
                  request is received before the :attr:`idle_timeout`
                  timeout, ``(None, None)`` is returned.

        """
        self.idle = True
        try:
            with Timeout(self.idle_timeout, False):
                return self.queue.popleft()
            return None, None
        finally:
            self.idle = False

    def _run(self):
        """Sub-classes must override this method to process delivery
        requests, calling :meth:`poll` when ready for the next one and writing
        the outcome to its :class:`~gevent.event.AsyncResult`.

        """
        raise NotImplementedError()


# vim:et:fdm=marker:sts=4:sw=4:ts=4
