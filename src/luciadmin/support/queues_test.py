import threading
import unittest

from hamcrest import assert_that, is_, calling, raises, contains_exactly

from luciadmin.support.queues import ClosableQueue, QueueClosed, Empty


class ClosableQueueTest(unittest.TestCase):

    def test_put_get(self):
        sut = ClosableQueue()
        sut.put(1)
        assert_that(sut.get(timeout=1), is_(1))

    def test_get_times_out(self):
        sut = ClosableQueue()
        assert_that(calling(sut.get).with_args(timeout=0.01), raises(Empty))

    def test_close_only_once(self):
        sut = ClosableQueue()
        assert_that(sut.closed, is_(False))
        assert_that(sut.close(), is_(True))
        assert_that(sut.close(), is_(False))
        assert_that(sut.closed, is_(True))
        assert_that(sut.qsize(), is_(1))

    def test_put_after_close_is_ignored(self):
        sut = ClosableQueue()
        sut.close()
        sut.put("late")
        assert_that(calling(sut.get).with_args(timeout=0.01), raises(QueueClosed))

    def test_items_before_close_are_delivered(self):
        sut = ClosableQueue()
        sut.put("a")
        sut.put("b")
        sut.close()
        assert_that(list(sut), contains_exactly("a", "b"))

    def test_closed_marker_seen_by_every_consumer(self):
        sut = ClosableQueue()
        sut.close()
        assert_that(calling(sut.get).with_args(timeout=0.01), raises(QueueClosed))
        assert_that(calling(sut.get).with_args(timeout=0.01), raises(QueueClosed))

    def test_close_wakes_blocked_consumer(self):
        sut = ClosableQueue()
        seen = []
        consumer = threading.Thread(target=lambda: seen.extend(sut))
        consumer.start()
        sut.put(1)
        sut.close()
        consumer.join(5)
        assert_that(consumer.is_alive(), is_(False))
        assert_that(seen, is_([1]))
