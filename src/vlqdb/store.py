"""LevelDB record storage framed with variable-length quantities."""
import logging
import urllib.parse
from pathlib import Path
from typing import Any, Iterable, Iterator

import mmh3
import plyvel

from .codec import decode_int, decode_long, encode_int, encode_long
from .options import Options
from .settings import SETTINGS_DIRECTORY, StoreSettings
from .stream import SourceExhausted

logger = logging.getLogger(__name__)


def encode_record(name: str, fields: list[bytes]) -> bytes:
    """Serialize a named record.

    Layout: <len(name)> <name utf-8> <field count> (<len(field)> <field>)*,
    where every length and count is a 32-bit variable-length quantity.
    """
    encoded_name = name.encode('utf-8')
    parts = [encode_int(len(encoded_name)), encoded_name, encode_int(len(fields))]
    for field in fields:
        parts.append(encode_int(len(field)))
        parts.append(bytes(field))
    return b''.join(parts)


def decode_record(data: bytes) -> tuple[str, list[bytes]]:
    """Deserialize a record produced by encode_record.

    Raises:
        SourceExhausted: The value is truncated
        MalformedVarint: A length or count is not a valid encoding
    """
    offset = 0

    def read_chunk() -> bytes:
        nonlocal offset
        length, consumed = decode_int(data, offset)
        offset += consumed
        if offset + length > len(data):
            raise SourceExhausted(f"Record truncated: need {length} bytes at offset {offset}, have {len(data) - offset}")
        chunk = data[offset:offset + length]
        offset += length
        return chunk

    name = read_chunk().decode('utf-8')
    count, consumed = decode_int(data, offset)
    offset += consumed
    fields = [read_chunk() for _ in range(count)]
    return name, fields


class RecordStore:
    """Named records of byte fields kept in a LevelDB database at <store>/.vlqdb/database.

    Keys follow the scheme <16-byte name hash><64-bit varint sequence number>; names sharing
    a hash get increasing sequence numbers under the same prefix.
    """

    def __init__(self, store_path: Path, options: Options | None = None) -> None:
        """Initialize the store.

        Args:
            store_path: Store root directory
            options: Database options; read from the store's settings file when omitted
        """
        self.store_path: Path = Path(store_path)
        self.database_path: Path = self.store_path / SETTINGS_DIRECTORY / 'database'
        if options is None:
            options = Options.from_settings(StoreSettings(self.store_path))
        self.options: Options = options
        self._logger: logging.Logger = options.logger() or logger
        self._database: plyvel.DB | None = None

    def open(self) -> None:
        """Open the LevelDB database.

        Raises:
            FileNotFoundError: The database is missing and create_if_missing is off
        """
        if self.options.create_if_missing():
            self.database_path.mkdir(parents=True, exist_ok=True)
        elif not self.database_path.exists():
            raise FileNotFoundError(f"Database directory not found: {self.database_path}")
        self._database = plyvel.DB(str(self.database_path), **self.options.to_plyvel_kwargs())
        self._logger.info(f"Opened record store: {self.database_path}")

    def close(self) -> None:
        if self._database is not None:
            self._database.close()
            self._database = None
            self._logger.info(f"Closed record store: {self.database_path}")

    def __enter__(self) -> "RecordStore":
        self.open()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def get(self, name: str) -> list[bytes] | None:
        """Read the fields of a record, or None if it does not exist."""
        found = self._find(name)
        return None if found is None else found[1]

    def put(self, name: str, fields: list[bytes]) -> None:
        self.put_many([(name, fields)])

    def put_many(self, records: Iterable[tuple[str, list[bytes]]]) -> None:
        """Write several records in one atomic batch.

        Raises:
            ValueError: More records than options.max_batch_size()
        """
        database = self._require_database()
        records = list(records)
        if len(records) > self.options.max_batch_size():
            raise ValueError(f"Batch of {len(records)} records exceeds the limit of {self.options.max_batch_size()}")

        # Sequence numbers handed out in this batch are not visible to _find yet.
        allocated: dict[bytes, int] = {}
        pending: dict[str, bytes] = {}
        with database.write_batch(transaction=True) as batch:
            for name, fields in records:
                name_hash = self._compute_name_hash(name)
                found = self._find(name)
                if name in pending:
                    key = pending[name]
                elif found is not None:
                    key = found[0]
                else:
                    seq_num = max(self._next_sequence_number(name_hash), allocated.get(name_hash, 0))
                    allocated[name_hash] = seq_num + 1
                    key = name_hash + encode_long(seq_num)
                pending[name] = key
                batch.put(key, encode_record(name, fields))
        self._logger.debug(f"Wrote {len(records)} records")

    def delete(self, name: str) -> bool:
        """Delete a record; returns whether it existed."""
        database = self._require_database()
        found = self._find(name)
        if found is None:
            return False
        database.delete(found[0])
        return True

    def names(self) -> Iterator[str]:
        database = self._require_database()
        for _, value in database.iterator(verify_checksums=self.options.verify_checksums()):
            name, _ = decode_record(value)
            yield name

    def inspect(self) -> Iterator[str]:
        """Generate human-readable lines describing every stored record."""
        database = self._require_database()
        for key, value in database.iterator(verify_checksums=self.options.verify_checksums()):
            seq_num, _ = decode_long(key, 16)
            name, fields = decode_record(value)
            sizes = ' '.join(str(len(field)) for field in fields)
            yield f"record {key[:16].hex()} #{seq_num} {urllib.parse.quote(name)} fields={len(fields)} sizes=[{sizes}]"

    def _find(self, name: str) -> tuple[bytes, list[bytes]] | None:
        database = self._require_database()
        name_hash = self._compute_name_hash(name)
        prefixed_db = database.prefixed_db(name_hash)
        for key, value in prefixed_db.iterator(verify_checksums=self.options.verify_checksums()):
            stored_name, fields = decode_record(value)
            if stored_name == name:
                return name_hash + key, fields
        return None

    def _next_sequence_number(self, name_hash: bytes) -> int:
        database = self._require_database()
        next_seq_num = 0
        for key in database.prefixed_db(name_hash).iterator(include_value=False):
            seq_num, _ = decode_long(key, 0)
            next_seq_num = max(next_seq_num, seq_num + 1)
        return next_seq_num

    def _require_database(self) -> plyvel.DB:
        if self._database is None:
            raise RuntimeError("Database not opened. Use context manager or call open().")
        return self._database

    @staticmethod
    def _compute_name_hash(name: str) -> bytes:
        """Compute the 128-bit Murmur3 hash of a record name as 16 big-endian bytes."""
        hash_value = mmh3.hash128(name.encode('utf-8'), signed=False)
        return hash_value.to_bytes(16, byteorder='big')
