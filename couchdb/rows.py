import io

from couchdb import exceptions
from couchdb.changes import sequence_id
from couchdb.iterator import Iter, Metadata, raw_json

__all__ = ['Row', 'Rows', 'FindRows', 'MultiQueryRows', 'RevsDiffRows']


class Row(object):
    """A single row of a result set.

    A `Row` is owned by the caller, who may pass the same instance to
    successive ``next()`` calls. Decoders overwrite every field they know
    about, so no value from a previous row survives.

    :ivar id: the document ID, if any
    :ivar key: the raw JSON of the row key, as bytes
    :ivar value: binary stream of the row value JSON
    :ivar doc: binary stream of the document JSON
    :ivar error: a `RowError` when the row reports a failure
    :ivar rev: the document revision, where known
    :ivar attachments: attachment handle; not provided by JSON responses
    """

    def __init__(self, id=None, key=None, value=None, doc=None, error=None, rev=None, attachments=None):
        self.id = id
        self.key = key
        self.value = value
        self.doc = doc
        self.error = error
        self.rev = rev
        self.attachments = attachments

    def __repr__(self):
        if self.error is not None:
            return '<%s %r error=%r>' % (type(self).__name__, self.id, str(self.error))
        return '<%s %r key=%r>' % (type(self).__name__, self.id, self.key)


def _string(value):
    return '' if value is None else str(value)


class RowsMeta(Metadata):
    fields = {
        'total_rows': ('total_rows', int, 0),
        'offset': ('offset', int, 0),
        'update_seq': ('update_seq', sequence_id, ''),
        'warning': ('warning', _string, ''),
        'bookmark': ('bookmark', _string, ''),
    }


def _row_error(data):
    error = data.get('error')
    if error is None:
        return None
    if isinstance(error, dict):
        return exceptions.RowError(error.get('id'), error.get('rev'), error.get('error'), error.get('reason'))
    # Missing keys in a keys= view query: {"key": ..., "error": "not_found"}
    return exceptions.RowError(data.get('id'), None, error, data.get('reason'))


def decode_row(it, row, event, value):
    data = it.read_value(event, value)
    if not isinstance(data, dict):
        raise exceptions.DecodeError("Expected a row object, got %r" % (data,))
    row.id = data.get('id')
    row.key = raw_json(data['key']) if 'key' in data else None
    row.value = io.BytesIO(raw_json(data['value'])) if 'value' in data else None
    doc = data.get('doc')
    row.doc = io.BytesIO(raw_json(doc)) if doc is not None else None
    row.error = _row_error(data)
    row.rev = None
    row.attachments = None
    return True


def decode_find_doc(it, row, event, value):
    doc = it.read_value(event, value)
    if not isinstance(doc, dict):
        raise exceptions.DecodeError("Expected a document, got %r" % (doc,))
    row.id = doc.get('_id')
    row.rev = doc.get('_rev')
    row.key = None
    row.value = None
    row.doc = io.BytesIO(raw_json(doc))
    row.error = None
    row.attachments = None
    return True


def decode_revs_diff(it, row, event, value):
    if event != 'map_key':
        raise exceptions.DecodeError("Expected a document ID, got %s" % event)
    row.id = value
    row.value = io.BytesIO(raw_json(it.read_value(*it.next_event())))
    row.key = None
    row.doc = None
    row.error = None
    row.rev = None
    row.attachments = None
    return True


class Rows(Iter):
    """Iterator over view, ``_all_docs`` and similar results."""

    row_class = Row

    def __init__(self, ctx, body, array_key='rows', decoder=decode_row, object_mode=False):
        super(Rows, self).__init__(ctx, body, array_key, RowsMeta(), decoder, object_mode=object_mode)

    @property
    def total_rows(self):
        return self.meta.total_rows

    @property
    def offset(self):
        return self.meta.offset

    @property
    def update_seq(self):
        return self.meta.update_seq


class FindRows(Rows):
    """Iterator over a ``_find`` response."""

    def __init__(self, ctx, body):
        super(FindRows, self).__init__(ctx, body, array_key='docs', decoder=decode_find_doc)

    @property
    def warning(self):
        return self.meta.warning

    @property
    def bookmark(self):
        return self.meta.bookmark


class RevsDiffRows(Rows):
    """Iterator over a ``_revs_diff`` response; one row per document ID."""

    def __init__(self, ctx, body):
        super(RevsDiffRows, self).__init__(ctx, body, array_key='', decoder=decode_revs_diff, object_mode=True)


class MultiQueryRows(Rows):
    """Iterator over the results of a multi-query view request.

    The body holds one result envelope per query::

        {"results": [{"total_rows": ..., "rows": [...]}, ...]}

    Rows of each query are returned in turn. When a query's rows run out,
    `next` raises `EndOfQuery`; `total_rows`, `offset` and `update_seq` then
    describe the query just finished. Calling `next` again continues with the
    following query, and returns ``False`` after the last one.
    """

    def __init__(self, ctx, body):
        super(MultiQueryRows, self).__init__(ctx, body, array_key='results')
        self._in_query = False

    def _begin(self):
        self._expect_map(*self.next_event())
        return self._open_envelope(None, self._array_key)

    def _next_element(self):
        if not self._in_query:
            event, value = self.next_event()
            if event == 'end_array':
                self._close_envelope(None)
                return None
            self._expect_map(event, value)
            self.meta.reset()
            if not self._open_envelope(self.meta, 'rows'):
                raise exceptions.EndOfQuery()
            self._in_query = True
        event, value = self.next_event()
        if event == 'end_array':
            self._close_envelope(self.meta)
            self._in_query = False
            raise exceptions.EndOfQuery()
        return event, value
