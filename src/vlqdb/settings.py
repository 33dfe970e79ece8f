from pathlib import Path

try:
    import tomllib
except ModuleNotFoundError:
    import tomli as tomllib  # pyright: ignore[reportMissingImports]


SETTINGS_DIRECTORY = '.vlqdb'
SETTINGS_FILE = 'settings.toml'

# Settings key constants
SETTING_OPTIONS = 'options'
SETTING_LOGGING_PATH = 'logging.path'


class StoreSettings:
    """Read-only view of a store's settings file.

    Loads <store>/.vlqdb/settings.toml when it exists and exposes its raw content.
    Interpreting the values is left to the consumers (see Options.from_settings).

    Example:
        settings = StoreSettings(store_path)
        write_buffer_size = settings.get('options.write_buffer_size', 4 << 20)
    """

    def __init__(self, store_path: Path):
        """Load settings for the store rooted at store_path.

        A missing settings file behaves like an empty one, so every get() returns its default.

        Args:
            store_path: Path to the store directory
        """
        self._store_path = Path(store_path)
        self._settings = {}

        settings_file = self._store_path / SETTINGS_DIRECTORY / SETTINGS_FILE
        if settings_file.exists():
            with open(settings_file, 'rb') as f:
                self._settings = tomllib.load(f)

    @property
    def store_path(self) -> Path:
        return self._store_path

    def get(self, key: str, default=None):
        """Get a setting value by key with optional default.

        Nested tables are addressed with dot notation ('options.block_size' reads
        settings['options']['block_size']). The default is returned when any part
        of the key path is missing or is not a table.

        Examples:
            >>> settings.get('options.compression_type', 'snappy')
            'none'
            >>> settings.get('nonexistent.key', 'fallback')
            'fallback'
        """
        keys = key.split('.')
        value = self._settings

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value
