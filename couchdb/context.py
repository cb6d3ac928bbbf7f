"""Cancellation signals for streamed results.

A `Context` is handed to an iterator when it is created; cancelling it (or
letting its timeout expire) makes any blocked or future read on that
iterator fail.

>>> ctx = Context(timeout=30)
>>> rows = db.all_docs(ctx=ctx)
>>> ctx.cancel()
"""
import logging
import threading

from couchdb import exceptions

__all__ = ['Context']

log = logging.getLogger(__name__)


class Context(object):
    """A cancellation signal, optionally with a deadline.

    :param timeout: seconds after which the context cancels itself with
                    `DeadlineExceeded`; ``None`` for no deadline
    """

    def __init__(self, timeout=None):
        self._lock = threading.Lock()
        self._event = threading.Event()
        self._err = None
        self._callbacks = []
        self._timer = None
        if timeout is not None:
            self._timer = threading.Timer(timeout, self._finish, args=(exceptions.DeadlineExceeded(),))
            self._timer.daemon = True
            self._timer.start()

    def __repr__(self):
        return '<%s %s>' % (type(self).__name__, 'done' if self.done else 'active')

    @property
    def done(self):
        return self._event.is_set()

    def err(self):
        """Return the cancellation error, or ``None`` while still active."""
        return self._err

    def wait(self, timeout=None):
        return self._event.wait(timeout)

    def cancel(self):
        self._finish(exceptions.Canceled())

    def add_callback(self, callback):
        """Call `callback` once the context is done.

        If the context is already done, `callback` runs immediately.

        :return: a function that unregisters the callback
        """
        with self._lock:
            if self._err is None:
                self._callbacks.append(callback)
                return lambda: self._remove(callback)
        callback()
        return lambda: None

    def _remove(self, callback):
        with self._lock:
            try:
                self._callbacks.remove(callback)
            except ValueError:
                pass

    def _finish(self, err):
        with self._lock:
            if self._err is not None:
                return
            self._err = err
            callbacks, self._callbacks = self._callbacks, []
            self._event.set()
        if self._timer is not None:
            self._timer.cancel()
        log.debug("Context finished: %s", err)
        for callback in callbacks:
            callback()
