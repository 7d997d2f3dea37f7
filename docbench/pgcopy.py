"""
PostgreSQL binary COPY encoding.

psycopg2 only streams COPY payloads it is handed, so the binary framing is
built here:

    header   PGCOPY\\n\\377\\r\\n\\0, int32 flags, int32 extension length
    row      int16 field count, then per field int32 length + bytes
             (length -1 means NULL)
    trailer  int16 -1

All integers are network byte order. A jsonb field is a version byte
(1) followed by the UTF-8 JSON text.
"""

import io
import json
import struct
import tempfile

PGCOPY_SIGNATURE = b"PGCOPY\n\xff\r\n\x00"
JSONB_VERSION = 1
TRAILER = struct.pack("!h", -1)

DEFAULT_SPOOL_SIZE = 64 * 1024 * 1024


def encode_header():
    return PGCOPY_SIGNATURE + struct.pack("!ii", 0, 0)


def encode_jsonb(value):
    text = json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    return bytes([JSONB_VERSION]) + text.encode("utf-8")


ENCODERS = {
    "jsonb": encode_jsonb,
}

DECODERS = {
    "jsonb": lambda data: json.loads(data[1:].decode("utf-8")),
}


def encode_row(fields):
    """Frame already-encoded field payloads (None for NULL) as one tuple."""
    parts = [struct.pack("!h", len(fields))]
    for value in fields:
        if value is None:
            parts.append(struct.pack("!i", -1))
        else:
            parts.append(struct.pack("!i", len(value)))
            parts.append(value)
    return b"".join(parts)


def decode_rows(data, types):
    """Yield decoded tuples from a complete binary COPY payload."""
    stream = io.BytesIO(data)

    signature = stream.read(len(PGCOPY_SIGNATURE))
    if signature != PGCOPY_SIGNATURE:
        raise ValueError("not a binary COPY payload")
    _flags, extension_length = struct.unpack("!ii", stream.read(8))
    stream.read(extension_length)

    decoders = [DECODERS[t] for t in types]
    while True:
        raw = stream.read(2)
        if len(raw) < 2:
            raise ValueError("binary COPY payload ended without trailer")
        (field_count,) = struct.unpack("!h", raw)
        if field_count == -1:
            return
        if field_count != len(decoders):
            raise ValueError(f"expected {len(decoders)} fields, got {field_count}")

        row = []
        for decode in decoders:
            (length,) = struct.unpack("!i", stream.read(4))
            if length == -1:
                row.append(None)
                continue
            payload = stream.read(length)
            if len(payload) != length:
                raise ValueError("truncated field in binary COPY payload")
            row.append(decode(payload))
        yield tuple(row)


class BinaryCopyWriter:
    """Row-at-a-time writer for a `COPY ... FROM STDIN (FORMAT BINARY)`.

    Rows are framed into a spooled buffer as they are written. Nothing
    reaches the server until `finish()`, which sends the whole stream as a
    single COPY; a writer that is aborted instead leaves the table as it
    was.
    """

    def __init__(self, cursor, copy_sql, types, spool_size=DEFAULT_SPOOL_SIZE):
        unknown = [t for t in types if t not in ENCODERS]
        if unknown:
            raise ValueError(f"unsupported COPY column type(s): {', '.join(unknown)}")

        self.cursor = cursor
        self.copy_sql = copy_sql
        self.types = tuple(types)
        self.rows = 0
        self.state = "open"

        self._encoders = [ENCODERS[t] for t in self.types]
        self._buffer = tempfile.SpooledTemporaryFile(max_size=spool_size)
        self._buffer.write(encode_header())

    def _check_open(self):
        if self.state != "open":
            raise RuntimeError(f"COPY writer is {self.state}")

    def write_row(self, *values):
        self._check_open()
        if len(values) != len(self._encoders):
            raise ValueError(f"expected {len(self._encoders)} values, got {len(values)}")

        fields = [None if v is None else encode(v) for encode, v in zip(self._encoders, values)]
        self._buffer.write(encode_row(fields))
        self.rows += 1

    def finish(self):
        """Send the stream and return the number of rows written."""
        self._check_open()
        self._buffer.write(TRAILER)
        self._buffer.seek(0)
        try:
            self.cursor.copy_expert(self.copy_sql, self._buffer)
        except Exception:
            self.state = "failed"
            raise
        finally:
            self._buffer.close()
        self.state = "finished"
        return self.rows

    def abort(self):
        if self.state == "open":
            self._buffer.close()
        self.state = "aborted"
