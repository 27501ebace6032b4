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


from collections import deque

from gevent.lock import Semaphore

__all__ = ['BlockingDeque']


class BlockingDeque(deque):
    """The queue of delivery requests shared by the clients of a pool. Idle
    clients wait in :meth:`popleft` until a request is added.

    """

    def __init__(self, iterable=()):
        super(BlockingDeque, self).__init__(iterable)
        self.sema = Semaphore(len(self))

    def append(self, item):
        super(BlockingDeque, self).append(item)
        self.sema.release()

    def appendleft(self, item):
        super(BlockingDeque, self).appendleft(item)
        self.sema.release()

    def popleft(self):
        """Removes and returns the first item, waiting for one if the queue
        is empty.

        """
        self.sema.acquire()
        return super(BlockingDeque, self).popleft()

    def drain(self):
        """Removes and returns every item in the queue without waiting.

        :rtype: list

        """
        items = []
        while self.sema.acquire(blocking=False):
            items.append(super(BlockingDeque, self).popleft())
        return items


# vim:et:fdm=marker:sts=4:sw=4:ts=4
