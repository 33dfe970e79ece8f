"""Tests for database options and settings."""
import logging
import tempfile
import unittest
from pathlib import Path

from vlqdb.options import UNLIMITED_BATCH_SIZE, CompressionType, Options
from vlqdb.settings import StoreSettings


def write_settings(store_path: Path, content: str):
    settings_dir = store_path / '.vlqdb'
    settings_dir.mkdir(parents=True, exist_ok=True)
    (settings_dir / 'settings.toml').write_text(content)


class OptionsTest(unittest.TestCase):
    """Tests for Options defaults and accessors."""

    def test_defaults(self):
        options = Options()

        self.assertTrue(options.create_if_missing())
        self.assertFalse(options.error_if_exists())
        self.assertEqual(4 * 1024 * 1024, options.write_buffer_size())
        self.assertEqual(1000, options.max_open_files())
        self.assertEqual(16, options.block_restart_interval())
        self.assertEqual(4096, options.block_size())
        self.assertEqual(CompressionType.SNAPPY, options.compression_type())
        self.assertTrue(options.verify_checksums())
        self.assertFalse(options.paranoid_checks())
        self.assertIsNone(options.comparator())
        self.assertIsNone(options.logger())
        self.assertEqual(0, options.cache_size())
        self.assertEqual(0, options.bits_per_key())
        self.assertEqual(52000, options.max_batch_size())
        self.assertEqual(128, options.max_manifest_size())
        self.assertFalse(options.reuse_logs())
        self.assertEqual(2 * 1024 * 1024, options.max_file_size())

    def test_setters_chain(self):
        """Setters return the same Options instance."""
        options = Options()
        result = options.create_if_missing(False).error_if_exists(True).block_size(16384).cache_size(1 << 20)

        self.assertIs(options, result)
        self.assertFalse(options.create_if_missing())
        self.assertTrue(options.error_if_exists())
        self.assertEqual(16384, options.block_size())
        self.assertEqual(1 << 20, options.cache_size())

    def test_compression_type_cannot_be_none(self):
        with self.assertRaises(ValueError):
            Options().compression_type(None)

    def test_compression_type_by_name(self):
        options = Options().compression_type('none')
        self.assertEqual(CompressionType.NONE, options.compression_type())

    def test_negative_batch_size_is_unlimited(self):
        options = Options().max_batch_size(-5)
        self.assertEqual(UNLIMITED_BATCH_SIZE, options.max_batch_size())

    def test_negative_manifest_size_disables_batch_limit(self):
        options = Options().max_manifest_size(-10)
        self.assertEqual(-1, options.max_manifest_size())
        self.assertEqual(UNLIMITED_BATCH_SIZE, options.max_batch_size())

    def test_positive_manifest_size_keeps_batch_limit(self):
        options = Options().max_manifest_size(64)
        self.assertEqual(64, options.max_manifest_size())
        self.assertEqual(52000, options.max_batch_size())

    def test_comparator_and_logger(self):
        def reverse(a, b):
            return (a < b) - (a > b)

        test_logger = logging.getLogger('vlqdb.test')
        options = Options().comparator(reverse).logger(test_logger)

        self.assertIs(reverse, options.comparator())
        self.assertIs(test_logger, options.logger())

        kwargs = options.to_plyvel_kwargs()
        self.assertIs(reverse, kwargs['comparator'])
        self.assertEqual(b'reverse', kwargs['comparator_name'])

    def test_to_plyvel_kwargs(self):
        kwargs = Options().to_plyvel_kwargs()

        self.assertTrue(kwargs['create_if_missing'])
        self.assertFalse(kwargs['error_if_exists'])
        self.assertEqual('snappy', kwargs['compression'])
        self.assertEqual(4 << 20, kwargs['write_buffer_size'])
        self.assertEqual(0, kwargs['bloom_filter_bits'])
        self.assertNotIn('lru_cache_size', kwargs)
        self.assertNotIn('comparator', kwargs)

    def test_to_plyvel_kwargs_custom(self):
        kwargs = Options().compression_type(CompressionType.NONE).cache_size(1 << 24).bits_per_key(10) \
            .to_plyvel_kwargs()

        self.assertIsNone(kwargs['compression'])
        self.assertEqual(1 << 24, kwargs['lru_cache_size'])
        self.assertEqual(10, kwargs['bloom_filter_bits'])


class SettingsTest(unittest.TestCase):
    """Tests for StoreSettings and Options.from_settings."""

    def test_missing_settings_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            settings = StoreSettings(Path(tmpdir))

            self.assertIsNone(settings.get('logging.path'))
            self.assertEqual('fallback', settings.get('options.block_size', 'fallback'))

    def test_nested_keys(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            store_path = Path(tmpdir)
            write_settings(store_path, '[logging]\npath = "/tmp/vlqdb.log"\n')
            settings = StoreSettings(store_path)

            self.assertEqual('/tmp/vlqdb.log', settings.get('logging.path'))
            self.assertEqual({'path': '/tmp/vlqdb.log'}, settings.get('logging'))
            self.assertIsNone(settings.get('logging.path.deeper'))

    def test_options_from_settings(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            store_path = Path(tmpdir)
            write_settings(store_path, '\n'.join([
                '[options]',
                'block_size = 8192',
                'compression_type = "none"',
                'paranoid_checks = true',
                'max_manifest_size = -1',
                'unknown_knob = 3',
                '',
            ]))

            options = Options.from_settings(StoreSettings(store_path))

            self.assertEqual(8192, options.block_size())
            self.assertEqual(CompressionType.NONE, options.compression_type())
            self.assertTrue(options.paranoid_checks())
            self.assertEqual(-1, options.max_manifest_size())
            self.assertEqual(UNLIMITED_BATCH_SIZE, options.max_batch_size())
            self.assertEqual(4096 * 1024, options.write_buffer_size())
