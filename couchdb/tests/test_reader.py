# -*- coding: utf-8 -*-

import threading
import unittest

from couchdb import exceptions
from couchdb.context import Context
from couchdb.reader import CancelableReader
from couchdb.tests.testutil import BlockingBody, ChunkedBody, FailingBody


def _in_thread(target, *args):
    thread = threading.Thread(target=target, args=args)
    thread.daemon = True
    thread.start()
    return thread


class ContextTestCase(unittest.TestCase):

    def test_cancel(self):
        ctx = Context()
        self.assertFalse(ctx.done)
        self.assertIsNone(ctx.err())
        ctx.cancel()
        self.assertTrue(ctx.done)
        self.assertIsInstance(ctx.err(), exceptions.Canceled)
        self.assertEqual(str(ctx.err()), "context canceled")

    def test_cancel_twice_keeps_first_error(self):
        ctx = Context()
        ctx.cancel()
        err = ctx.err()
        ctx.cancel()
        self.assertIs(ctx.err(), err)

    def test_deadline(self):
        ctx = Context(timeout=0.01)
        self.assertTrue(ctx.wait(5))
        self.assertIsInstance(ctx.err(), exceptions.DeadlineExceeded)
        self.assertEqual(ctx.err().status_code, 504)

    def test_callbacks(self):
        ctx = Context()
        calls = []
        ctx.add_callback(lambda: calls.append('a'))
        remove = ctx.add_callback(lambda: calls.append('b'))
        remove()
        ctx.cancel()
        self.assertEqual(calls, ['a'])

    def test_callback_after_done_runs_immediately(self):
        ctx = Context()
        ctx.cancel()
        calls = []
        ctx.add_callback(lambda: calls.append(1))
        self.assertEqual(calls, [1])


class CancelableReaderTestCase(unittest.TestCase):

    def test_reads_without_context(self):
        body = ChunkedBody(b'abc', b'def')
        reader = CancelableReader(None, body)
        self.assertEqual(reader.read(10), b'abc')
        self.assertEqual(reader.read(2), b'de')
        self.assertEqual(reader.read(10), b'f')
        self.assertEqual(reader.read(10), b'')
        self.assertTrue(reader.eof)

    def test_read_zero_does_not_touch_body(self):
        body = ChunkedBody(b'abc')
        reader = CancelableReader(Context(), body)
        self.assertEqual(reader.read(0), b'')
        self.assertEqual(reader.read(10), b'abc')

    def test_pre_canceled_context(self):
        ctx = Context()
        ctx.cancel()
        body = ChunkedBody(b'abc')
        reader = CancelableReader(ctx, body)
        self.assertRaises(exceptions.Canceled, reader.read, 10)
        # Nothing was consumed.
        self.assertEqual(body.read(10), b'abc')

    def test_cancel_interrupts_blocked_read(self):
        ctx = Context()
        body = BlockingBody(b'abc')
        reader = CancelableReader(ctx, body)
        self.assertEqual(reader.read(10), b'abc')

        def cancel():
            body.blocked.wait(5)
            ctx.cancel()
        _in_thread(cancel)
        self.assertRaises(exceptions.Canceled, reader.read, 10)
        self.assertFalse(reader.eof)
        reader.close()

    def test_deadline_interrupts_blocked_read(self):
        body = BlockingBody()
        reader = CancelableReader(Context(timeout=0.05), body)
        self.assertRaises(exceptions.DeadlineExceeded, reader.read, 10)
        reader.close()

    def test_close_unblocks_read(self):
        body = BlockingBody()
        reader = CancelableReader(Context(), body)

        def close():
            body.blocked.wait(5)
            reader.close()
        _in_thread(close)
        self.assertRaises(exceptions.IteratorClosed, reader.read, 10)
        self.assertEqual(body.close_count, 1)

    def test_close_is_idempotent(self):
        body = ChunkedBody(b'abc')
        reader = CancelableReader(None, body)
        reader.close()
        reader.close()
        self.assertTrue(reader.closed)
        self.assertEqual(body.close_count, 1)

    def test_read_after_close(self):
        reader = CancelableReader(None, ChunkedBody(b'abc'))
        reader.close()
        self.assertRaises(exceptions.IteratorClosed, reader.read, 10)

    def test_read_after_eof_and_close(self):
        reader = CancelableReader(None, ChunkedBody(b'abc'))
        self.assertEqual(reader.read(), b'abc')
        self.assertEqual(reader.read(), b'')
        reader.close()
        self.assertEqual(reader.read(), b'')

    def test_read_error_propagates(self):
        error = IOError("connection reset")
        reader = CancelableReader(Context(), FailingBody(error, b'abc'))
        self.assertEqual(reader.read(10), b'abc')
        with self.assertRaises(IOError) as cm:
            reader.read(10)
        self.assertIs(cm.exception, error)

    def test_close_during_read_raises_closed(self):
        # Closing the body makes the pending read fail; the caller still
        # sees the reader as closed, whichever side wakes it first.
        for _ in range(20):
            body = BlockingBody()
            reader = CancelableReader(Context(), body)

            def close():
                body.blocked.wait(5)
                reader.close()
            thread = _in_thread(close)
            self.assertRaises(exceptions.IteratorClosed, reader.read, 10)
            thread.join(5)
