"""Options controlling how a database is opened.

Each knob is a single method: called without an argument it returns the current
value, called with one it stores the value and returns the Options instance so
calls can be chained:

    options = Options().create_if_missing(False).block_size(16 * 1024)
    assert options.block_size() == 16 * 1024
"""
import logging
from enum import Enum
from typing import Any, Callable

from .settings import SETTING_OPTIONS, StoreSettings

UNLIMITED_BATCH_SIZE = (1 << 31) - 1

_UNSET: Any = object()

# Knobs that can be given in a settings file
_SETTINGS_KNOBS = frozenset((
    'create_if_missing', 'error_if_exists', 'write_buffer_size', 'max_open_files', 'block_restart_interval',
    'block_size', 'compression_type', 'verify_checksums', 'paranoid_checks', 'cache_size', 'bits_per_key',
    'max_batch_size', 'max_manifest_size', 'reuse_logs', 'max_file_size',
))


class CompressionType(Enum):
    NONE = 'none'
    SNAPPY = 'snappy'


class Options:
    """Named database knobs with independent defaults.

    Options carries values only; it does not validate them against each other.
    The two exceptions mirror the database's own rules: a negative batch size
    means unlimited, and a negative manifest size disables the manifest cap and
    also makes the batch size unlimited.
    """

    def __init__(self) -> None:
        self._create_if_missing = True
        self._error_if_exists = False
        self._write_buffer_size = 4 << 20
        self._max_open_files = 1000
        self._block_restart_interval = 16
        self._block_size = 4 * 1024
        self._compression_type = CompressionType.SNAPPY
        self._verify_checksums = True
        self._paranoid_checks = False
        self._comparator: Callable[[bytes, bytes], int] | None = None
        self._logger: logging.Logger | None = None
        self._cache_size = 0
        self._bits_per_key = 0
        self._max_batch_size = 52_000
        self._max_manifest_size = 128
        self._reuse_logs = False
        self._max_file_size = 2 * 1024 * 1024

    def create_if_missing(self, value: bool = _UNSET):
        if value is _UNSET:
            return self._create_if_missing
        self._create_if_missing = value
        return self

    def error_if_exists(self, value: bool = _UNSET):
        if value is _UNSET:
            return self._error_if_exists
        self._error_if_exists = value
        return self

    def write_buffer_size(self, value: int = _UNSET):
        """Bytes buffered in memory before they are converted to a sorted on-disk file."""
        if value is _UNSET:
            return self._write_buffer_size
        self._write_buffer_size = value
        return self

    def max_open_files(self, value: int = _UNSET):
        if value is _UNSET:
            return self._max_open_files
        self._max_open_files = value
        return self

    def block_restart_interval(self, value: int = _UNSET):
        """Number of keys between restart points for delta encoding of keys."""
        if value is _UNSET:
            return self._block_restart_interval
        self._block_restart_interval = value
        return self

    def block_size(self, value: int = _UNSET):
        """Approximate uncompressed size of user data packed per block."""
        if value is _UNSET:
            return self._block_size
        self._block_size = value
        return self

    def compression_type(self, value: CompressionType = _UNSET):
        if value is _UNSET:
            return self._compression_type
        if value is None:
            raise ValueError("The compression_type argument cannot be None")
        self._compression_type = CompressionType(value)
        return self

    def verify_checksums(self, value: bool = _UNSET):
        """Verify data read from storage against its checksums."""
        if value is _UNSET:
            return self._verify_checksums
        self._verify_checksums = value
        return self

    def paranoid_checks(self, value: bool = _UNSET):
        if value is _UNSET:
            return self._paranoid_checks
        self._paranoid_checks = value
        return self

    def comparator(self, value: Callable[[bytes, bytes], int] | None = _UNSET):
        """Key ordering function; None keeps the bytewise default.

        The database requires the same comparator name on every open, taken from
        the callable's ``name`` attribute or its ``__name__``.
        """
        if value is _UNSET:
            return self._comparator
        self._comparator = value
        return self

    def logger(self, value: logging.Logger | None = _UNSET):
        if value is _UNSET:
            return self._logger
        self._logger = value
        return self

    def cache_size(self, value: int = _UNSET):
        """Block cache size in bytes; 0 keeps the database's built-in 8 MiB cache."""
        if value is _UNSET:
            return self._cache_size
        self._cache_size = value
        return self

    def bits_per_key(self, value: int = _UNSET):
        """Bloom filter bits per key; 0 disables the filter. 10 gives about 1% false positives."""
        if value is _UNSET:
            return self._bits_per_key
        self._bits_per_key = value
        return self

    def max_batch_size(self, value: int = _UNSET):
        if value is _UNSET:
            return self._max_batch_size
        if value < 0:
            value = UNLIMITED_BATCH_SIZE
        self._max_batch_size = value
        return self

    def max_manifest_size(self, value: int = _UNSET):
        if value is _UNSET:
            return self._max_manifest_size
        if value < 0:
            value = -1
            self.max_batch_size(-1)
        self._max_manifest_size = value
        return self

    def reuse_logs(self, value: bool = _UNSET):
        if value is _UNSET:
            return self._reuse_logs
        self._reuse_logs = value
        return self

    def max_file_size(self, value: int = _UNSET):
        """Bytes written to a table file before switching to a new one."""
        if value is _UNSET:
            return self._max_file_size
        self._max_file_size = value
        return self

    @classmethod
    def from_settings(cls, settings: StoreSettings) -> "Options":
        """Build options from the [options] table of a settings file.

        Keys are the knob names (e.g. write_buffer_size). compression_type is given
        by name ('snappy' or 'none'). Unknown keys and the comparator and logger
        knobs, which cannot be expressed in TOML, are ignored.
        """
        options = cls()
        table = settings.get(SETTING_OPTIONS, {})
        if not isinstance(table, dict):
            return options

        for key, value in table.items():
            if key in _SETTINGS_KNOBS:
                getattr(options, key)(value)

        return options

    def to_plyvel_kwargs(self) -> dict[str, Any]:
        """Translate the knobs understood by plyvel.DB into its keyword arguments.

        verify_checksums applies per read and max_batch_size is enforced by the
        caller; max_manifest_size and reuse_logs have no plyvel counterpart.
        """
        kwargs: dict[str, Any] = {
            'create_if_missing': self._create_if_missing,
            'error_if_exists': self._error_if_exists,
            'paranoid_checks': self._paranoid_checks,
            'write_buffer_size': self._write_buffer_size,
            'max_open_files': self._max_open_files,
            'block_size': self._block_size,
            'block_restart_interval': self._block_restart_interval,
            'max_file_size': self._max_file_size,
            'compression': 'snappy' if self._compression_type is CompressionType.SNAPPY else None,
            'bloom_filter_bits': self._bits_per_key,
        }
        if self._cache_size > 0:
            kwargs['lru_cache_size'] = self._cache_size
        if self._comparator is not None:
            name = getattr(self._comparator, 'name', None) or self._comparator.__name__
            kwargs['comparator'] = self._comparator
            kwargs['comparator_name'] = name.encode('utf-8') if isinstance(name, str) else name
        return kwargs
