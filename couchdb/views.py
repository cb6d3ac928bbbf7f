import collections
import json


def _load(stream):
    if stream is None:
        return None
    return json.loads(stream.read().decode('utf-8'))


class ViewResult(object):
    """Result of view query; contains rows, offset, total_rows.
    Instances of this class are not supposed to be created by client software.
    """

    def __init__(self, rows, offset, total_rows, update_seq=None):
        self.rows = rows
        self.offset = offset
        self.total_rows = total_rows
        self.update_seq = update_seq

    @classmethod
    def from_rows(cls, rows):
        """Read a streaming `Rows` iterator to the end and close it."""
        with rows:
            result = [ViewRow.from_row(row) for row in rows]
        return cls(result, rows.offset, rows.total_rows, rows.update_seq or None)

    def __len__(self):
        return len(self.rows)

    def __getitem__(self, i):
        return self.rows[i]

    def __iter__(self):
        return iter(self.rows)

    def json(self):
        "Return data in a JSON-like representation."
        result = dict()
        result["total_rows"] = self.total_rows
        result["offset"] = self.offset
        if self.update_seq is not None:
            result["update_seq"] = self.update_seq
        return result


class ViewRow(collections.namedtuple("ViewRow", ["id", "key", "value", "doc", "error"])):
    """A decoded view row."""

    __slots__ = ()

    @classmethod
    def from_row(cls, row):
        key = json.loads(row.key.decode('utf-8')) if row.key is not None else None
        return cls(row.id, key, _load(row.value), _load(row.doc), row.error)
