"""
A queue that can be closed by the consumer while producers are still running.
"""
import logging
from queue import Empty, Queue

logger = logging.getLogger(__name__)


class QueueClosed(Exception):
    """ Raised by ClosableQueue.get() once the queue has been closed and drained up to the close marker. """


class ClosableQueue(Queue):
    """
    A Queue with a close() operation.

    Once closed, put() silently discards items, so that background producers
    (e.g. a zeroconf browser thread) don't have to care whether anyone is still listening.
    Consumers see QueueClosed when they reach the close marker.
    """

    _closed_marker = object()

    def __init__(self, maxsize=0):
        super().__init__(maxsize)
        self._closed = False

    @property
    def closed(self):
        return self._closed

    def put(self, item, block=True, timeout=None):
        if self._closed:
            logger.debug("discarding %r, queue is closed" % (item,))
            return
        super().put(item, block, timeout)

    def close(self):
        """
        Closes the queue.
        :return: True if this call closed the queue, False if it was already closed.
        """
        if self._closed:
            return False
        self._closed = True
        super().put(self._closed_marker)
        return True

    def get(self, block=True, timeout=None):
        """
        Retrieves the next item.
        raises QueueClosed when the queue was closed, and queue.Empty on timeout.
        """
        item = super().get(block, timeout)
        if item is self._closed_marker:
            # leave the marker for any other consumer
            super().put(item)
            raise QueueClosed()
        return item

    def __iter__(self):
        """ iterates the items until the queue is closed. """
        while True:
            try:
                yield self.get()
            except QueueClosed:
                return


__all__ = ['ClosableQueue', 'QueueClosed', 'Empty']
