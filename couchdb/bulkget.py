import collections
import io

from couchdb import exceptions
from couchdb.iterator import Iter, raw_json
from couchdb.rows import Row

__all__ = ['BulkGetRows']


def _fill(row, doc_id, entry):
    row.key = None
    row.value = None
    row.attachments = None
    if 'error' in entry:
        error = entry['error'] or {}
        row.id = doc_id if doc_id is not None else error.get('id')
        row.rev = error.get('rev')
        row.doc = None
        row.error = exceptions.BulkGetError(error.get('id'), error.get('rev'), error.get('error'), error.get('reason'))
    else:
        doc = entry.get('ok')
        if not isinstance(doc, dict):
            raise exceptions.DecodeError("Expected a document in bulk_get result, got %r" % (doc,))
        row.id = doc_id
        row.rev = doc.get('_rev')
        row.doc = io.BytesIO(raw_json(doc))
        row.error = None


def decode_bulk_result(it, row, event, value):
    result = it.read_value(event, value)
    if not isinstance(result, dict):
        raise exceptions.DecodeError("Expected a bulk_get result, got %r" % (result,))
    doc_id = result.get('id')
    entries = [(doc_id, entry) for entry in result.get('docs') or []]
    if not entries:
        return False
    it.pending.extend(entries[1:])
    _fill(row, *entries[0])
    return True


class BulkGetRows(Iter):
    """Iterator over a ``_bulk_get`` response.

    Each result may hold several documents (one per requested open revision)
    or errors; every one of them becomes its own row, in response order.
    Errors are reported on the row as a `BulkGetError` and do not stop
    iteration.
    """

    row_class = Row

    def __init__(self, ctx, body):
        super(BulkGetRows, self).__init__(ctx, body, 'results', None, decode_bulk_result)
        self.pending = collections.deque()

    def _advance(self, row):
        if self.pending:
            _fill(row, *self.pending.popleft())
            return True
        return super(BulkGetRows, self)._advance(row)
