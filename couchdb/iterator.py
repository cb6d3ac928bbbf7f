"""Pull-based decoding of streamed CouchDB results.

CouchDB answers most multi-row requests with an envelope such as::

    {"total_rows": 3, "offset": 0, "rows": [{...}, {...}, {...}]}

where the rows may number in the millions, and the metadata keys may come
before or after the row array. `Iter` walks such a body one parse event at a
time, handing each element of the row array to a decoder function, so only a
single row is ever held in memory.

Two other layouts are supported: flat mode (an empty `array_key`), where the
body is a newline separated stream of JSON values, as sent by continuous
feeds; and object mode, where the body is one object whose every key/value
pair is a row, as returned by ``_revs_diff``.

A decoder is a plain function ``decoder(it, row, event, value)``. It is called
with the first parse event of an element, reads the rest of the element from
`it` (usually with `Iter.read_value`), and fills in `row`. It returns
``True`` if a row was produced, or ``False`` if the element was consumed
without producing one.
"""
import json
import logging

import ijson

from couchdb import exceptions
from couchdb.reader import CancelableReader

__all__ = ['Iter', 'Metadata', 'raw_json']

log = logging.getLogger(__name__)

UNSTARTED = 'unstarted'
STREAMING = 'streaming'
EXHAUSTED = 'exhausted'
ERRORED = 'errored'
CLOSED = 'closed'

_OPEN = ('start_map', 'start_array')
_CLOSE = ('end_map', 'end_array')
_DELIMITERS = {
    'start_map': '{',
    'end_map': '}',
    'start_array': '[',
    'end_array': ']',
}


def raw_json(value):
    """Encode a decoded JSON value as compact UTF-8 JSON."""
    return json.dumps(value, ensure_ascii=False, separators=(',', ':')).encode('utf-8')


def _unexpected(event, value):
    if event in _DELIMITERS:
        return exceptions.DecodeError("Unexpected JSON delimiter: %s" % _DELIMITERS[event])
    return exceptions.DecodeError("Unexpected token %s: %s" % (event, value))


class Metadata(object):
    """Out-of-band fields of a result envelope.

    Subclasses declare the top-level keys they understand in `fields`, which
    maps each key to an ``(attribute, converter, default)`` triple.
    """

    fields = {}

    def __init__(self):
        self.reset()

    def reset(self):
        for attr, _, default in self.fields.values():
            setattr(self, attr, default)

    def accepts(self, key):
        return key in self.fields

    def parse(self, key, value):
        attr, convert, default = self.fields[key]
        if value is None:
            setattr(self, attr, default)
            return
        try:
            setattr(self, attr, convert(value))
        except (TypeError, ValueError) as exc:
            raise exceptions.DecodeError("Invalid value for %s: %r" % (key, value)) from exc


class Iter(object):
    """Iterator over the rows of a streamed response body.

    The iterator owns `body` and closes it exactly once: when the rows are
    exhausted, when `close` is called, or both.

    :param ctx: the `Context` governing reads, or ``None``
    :param body: a binary stream with ``read(size)`` and ``close()``
    :param array_key: the top-level key holding the rows; empty for flat mode
    :param meta: a `Metadata` instance receiving the other top-level keys, or
                 ``None`` to discard them
    :param decoder: the row decoder function
    :param object_mode: treat every key/value pair of the top-level object as
                        a row
    """

    row_class = None

    def __init__(self, ctx, body, array_key, meta, decoder, object_mode=False):
        self._reader = CancelableReader(ctx, body)
        self._events = ijson.basic_parse(self._reader, use_float=True, multiple_values=True)
        self._array_key = array_key
        self._object_mode = object_mode
        self._decoder = decoder
        self._pushback = []
        self._seen_events = False
        self._state = UNSTARTED
        self._error = None
        self.meta = meta

    def __repr__(self):
        return '<%s %s>' % (type(self).__name__, self._state)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    def __iter__(self):
        while True:
            row = self.row_class()
            try:
                more = self.next(row)
            except exceptions.EndOfQuery:
                continue
            if not more:
                return
            yield row

    @property
    def state(self):
        return self._state

    def next(self, row):
        """Decode the next row into `row`.

        `row` belongs to the caller and may be reused between calls; every
        field the decoder knows about is overwritten.

        :return: ``True`` if `row` was populated, ``False`` once the stream is
                 exhausted
        :raise DecodeError: the body is not valid JSON of the expected shape
        :raise UnexpectedEOF: the body ended in the middle of the envelope
        :raise IteratorClosed: the iterator has been closed
        """
        if self._state == CLOSED:
            raise exceptions.IteratorClosed()
        if self._state == ERRORED:
            raise self._error
        if self._state == EXHAUSTED:
            return False
        try:
            return self._advance(row)
        except exceptions.EndOfQuery:
            raise
        except Exception as exc:
            if self._state != CLOSED:
                self._state = ERRORED
                self._error = exc
                log.debug("Iteration failed: %s", exc)
            raise

    def close(self):
        """Release the response body. Safe to call in any state."""
        self._state = CLOSED
        self._reader.close()

    def next_event(self):
        """Return the next ``(event, value)`` parse event.

        :raise UnexpectedEOF: if the body is exhausted
        """
        event = self._pull()
        if event is None:
            raise exceptions.UnexpectedEOF()
        return event

    def read_value(self, event, value):
        """Build the complete JSON value whose first parse event is given."""
        if event not in _OPEN:
            if event in _CLOSE or event == 'map_key':
                raise _unexpected(event, value)
            return value
        builder = ijson.ObjectBuilder()
        builder.event(event, value)
        depth = 1
        while depth:
            event, value = self.next_event()
            if event in _OPEN:
                depth += 1
            elif event in _CLOSE:
                depth -= 1
            builder.event(event, value)
        return builder.value

    def skip_value(self, event, value):
        """Consume the JSON value whose first parse event is given."""
        if event not in _OPEN:
            return
        depth = 1
        while depth:
            event, value = self.next_event()
            if event in _OPEN:
                depth += 1
            elif event in _CLOSE:
                depth -= 1

    def _pull(self):
        if self._pushback:
            return self._pushback.pop()
        try:
            event = next(self._events)
        except StopIteration:
            return None
        except ijson.IncompleteJSONError as exc:
            if self._reader.eof:
                if not self._seen_events:
                    # Empty or whitespace-only body.
                    return None
                raise exceptions.UnexpectedEOF() from exc
            raise exceptions.DecodeError(str(exc)) from exc
        except ijson.JSONError as exc:
            raise exceptions.DecodeError(str(exc)) from exc
        self._seen_events = True
        return event

    def _expect_map(self, event, value):
        if event != 'start_map':
            raise _unexpected(event, value)

    def _open_envelope(self, meta, array_key):
        """Consume keys of an opened envelope up to its row array.

        :return: ``True`` when positioned inside the row array, ``False`` if
                 the envelope closed without one
        """
        while True:
            event, value = self.next_event()
            if event == 'end_map':
                return False
            if event != 'map_key':
                raise _unexpected(event, value)
            if value == array_key:
                event, value = self.next_event()
                if event != 'start_array':
                    raise _unexpected(event, value)
                return True
            self._parse_meta(meta, value)

    def _close_envelope(self, meta):
        """Consume the keys following a row array, and the closing brace."""
        while True:
            event, value = self.next_event()
            if event == 'end_map':
                return
            if event != 'map_key':
                raise _unexpected(event, value)
            self._parse_meta(meta, value)

    def _parse_meta(self, meta, key):
        event, value = self.next_event()
        if meta is not None and meta.accepts(key):
            meta.parse(key, self.read_value(event, value))
        else:
            log.debug("Discarding unknown key %r", key)
            self.skip_value(event, value)

    def _begin(self):
        if self._array_key:
            self._expect_map(*self.next_event())
            return self._open_envelope(self.meta, self._array_key)
        if self._object_mode:
            self._expect_map(*self.next_event())
        return True

    def _next_element(self):
        """Return the first parse event of the next row, or ``None`` at the end."""
        if self._array_key:
            event, value = self.next_event()
            if event == 'end_array':
                self._close_envelope(self.meta)
                return None
            return event, value
        if self._object_mode:
            event, value = self.next_event()
            if event == 'end_map':
                return None
            return event, value
        return self._pull()

    def _advance(self, row):
        if self._state == UNSTARTED:
            self._state = STREAMING
            if not self._begin():
                self._finish()
                return False
        while True:
            element = self._next_element()
            if element is None:
                self._finish()
                return False
            if self._decoder(self, row, *element):
                return True

    def _finish(self):
        log.debug("%s exhausted", type(self).__name__)
        self._state = EXHAUSTED
        self._reader.close()
