import logging
import queue
import threading

from couchdb import exceptions

__all__ = ['CancelableReader']

log = logging.getLogger(__name__)


class _Read(object):

    def __init__(self, size):
        self.size = size
        self.wake = threading.Event()
        self.finished = False
        self.data = None
        self.error = None


class CancelableReader(object):
    """Binary reader whose reads can be interrupted.

    The blocking read on `body` runs on a helper thread, so the caller can
    give up on it as soon as `ctx` is canceled or `close()` is called from
    another thread. A read that already completed wins over a concurrent
    cancellation.

    :param ctx: a `Context`, or ``None`` for a read that can only be
                interrupted by `close()`
    :param body: an object with ``read(size)`` and ``close()``
    """

    def __init__(self, ctx, body):
        self._ctx = ctx
        self._body = body
        self._lock = threading.Lock()
        self._closed = False
        self._eof = False
        self._current = None
        self._requests = None
        self._worker = None

    @property
    def closed(self):
        return self._closed

    @property
    def eof(self):
        """Whether the underlying body reported end-of-stream."""
        return self._eof

    def read(self, size=-1):
        if size == 0:
            return b''
        if self._eof:
            return b''
        if self._closed:
            raise exceptions.IteratorClosed()
        if self._ctx is not None and self._ctx.err() is not None:
            raise self._ctx.err()

        op = _Read(size)
        with self._lock:
            if self._closed:
                raise exceptions.IteratorClosed()
            self._current = op
            self._start()
            self._requests.put(op)
        remove = self._ctx.add_callback(op.wake.set) if self._ctx is not None else None
        try:
            op.wake.wait()
        finally:
            if remove is not None:
                remove()
            with self._lock:
                self._current = None

        if op.finished:
            if op.error is not None:
                if self._closed:
                    # The body was closed under the read.
                    raise exceptions.IteratorClosed() from op.error
                raise op.error
            if not op.data:
                self._eof = True
            return op.data
        if self._closed:
            raise exceptions.IteratorClosed()
        raise self._ctx.err()

    def close(self):
        with self._lock:
            if self._closed:
                return
            self._closed = True
            op = self._current
            if self._requests is not None:
                self._requests.put(None)
        if op is not None:
            op.wake.set()
        log.debug("Closing reader (eof=%s)", self._eof)
        self._body.close()

    def _start(self):
        if self._worker is not None:
            return
        self._requests = queue.Queue()
        self._worker = threading.Thread(target=self._run, name='couchdb-reader')
        self._worker.daemon = True
        self._worker.start()

    def _run(self):
        while True:
            op = self._requests.get()
            if op is None:
                return
            try:
                op.data = self._body.read(op.size)
            except Exception as exc:
                op.error = exc
            op.finished = True
            op.wake.set()
