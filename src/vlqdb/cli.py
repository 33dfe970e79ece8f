import argparse
import logging
import os
import sys
import textwrap
from functools import wraps
from pathlib import Path

from . import RecordStore, StoreSettings
from .codec import INT_BITS, LONG_BITS, encode_int, encode_long, iter_decode
from .settings import SETTING_LOGGING_PATH

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def needs_store(func):
    """Decorator for commands that work on a record store.

    The decorated function receives (store, args); the wrapper takes (store_path, args),
    opens the store for the duration of the call and closes it afterwards.
    """
    @wraps(func)
    def wrapper(store_path, args):
        with RecordStore(store_path) as store:
            return func(store, args)
    return wrapper


def no_store(func):
    """Decorator for commands that only use the codec.

    The decorated function receives (args); the store path is ignored.
    """
    @wraps(func)
    def wrapper(store_path, args):
        return func(args)
    return wrapper


def configure_logging_from_settings(settings: StoreSettings) -> bool:
    """Send log output to the file named by the logging.path setting, if any.

    Keeps the current logging level when one is already configured.

    Returns:
        True if logging was configured, False otherwise
    """
    log_path_setting = settings.get(SETTING_LOGGING_PATH)
    if not log_path_setting:
        return False

    current_level = logging.root.level if logging.root.level != logging.NOTSET else logging.INFO

    for handler in logging.root.handlers[:]:
        logging.root.removeHandler(handler)

    logging.basicConfig(filename=str(log_path_setting), level=current_level, format=LOG_FORMAT)
    return True


def vlqdb_main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(
        prog='vlqdb',
        description='Encode and decode variable-length quantities and manage records framed with them.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent('''
            Examples:
              vlqdb encode 300
              vlqdb decode d302
              vlqdb put greeting hello world
            ''').strip()
    )
    parser.add_argument(
        '--store',
        metavar='PATH',
        help='Path to the store directory. If not provided, uses VLQDB_STORE environment variable or the current '
             'directory.')
    parser.add_argument(
        '--log-file',
        metavar='PATH',
        help='Path to log file. If not provided, uses logging.path from store settings or no logging.')
    parser.add_argument(
        '--log-level',
        metavar='LEVEL',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL). Defaults to INFO when --log-file is provided.')
    subparsers = parser.add_subparsers(
        dest='command',
        title='Commands',
        description='Available commands',
        help='Use "vlqdb COMMAND --help" for command-specific help',
        required=True
    )

    def add_width_argument(subparser):
        subparser.add_argument(
            '--width',
            type=int,
            choices=[INT_BITS, LONG_BITS],
            default=LONG_BITS,
            help='Integer width in bits (default: 64)')

    parser_encode = subparsers.add_parser(
        'encode',
        help='Print the encoding of integers as hex',
        description='Encodes each value and prints one hex string per line. Negative values are encoded as their '
                    'unsigned bit pattern at the selected width.')
    parser_encode.add_argument('values', metavar='VALUE', type=int, nargs='+', help='Integers to encode')
    add_width_argument(parser_encode)
    parser_encode.set_defaults(method=_encode)

    parser_decode = subparsers.add_parser(
        'decode',
        help='Decode a hex string of concatenated encodings',
        description='Decodes every value in the given hex string and prints one value per line.')
    parser_decode.add_argument('data', metavar='HEX', help='Hex-encoded bytes')
    add_width_argument(parser_decode)
    parser_decode.set_defaults(method=_decode)

    parser_dump = subparsers.add_parser(
        'dump',
        help='Decode a file of concatenated encodings',
        description='Reads a binary file made of concatenated encodings and prints one value per line.')
    parser_dump.add_argument('file', metavar='FILE', help='File to read')
    add_width_argument(parser_dump)
    parser_dump.set_defaults(method=_dump)

    parser_put = subparsers.add_parser(
        'put',
        help='Store a record',
        description='Stores a record made of the given UTF-8 fields under NAME, replacing any existing record.')
    parser_put.add_argument('name', metavar='NAME', help='Record name')
    parser_put.add_argument('fields', metavar='FIELD', nargs='*', help='Record fields')
    parser_put.set_defaults(method=_put)

    parser_get = subparsers.add_parser(
        'get',
        help='Print the fields of a record',
        description='Prints each field of the record stored under NAME on its own line.')
    parser_get.add_argument('name', metavar='NAME', help='Record name')
    parser_get.set_defaults(method=_get)

    parser_delete = subparsers.add_parser(
        'delete',
        help='Delete a record',
        description='Deletes the record stored under NAME.')
    parser_delete.add_argument('name', metavar='NAME', help='Record name')
    parser_delete.set_defaults(method=_delete)

    parser_inspect = subparsers.add_parser(
        'inspect',
        help='Display stored records',
        description='Displays the key, sequence number, name and field sizes of every stored record.')
    parser_inspect.set_defaults(method=_inspect)

    args = parser.parse_args(argv)

    if args.log_file:
        logging.basicConfig(
            filename=args.log_file,
            level=getattr(logging, args.log_level or 'INFO'),
            format=LOG_FORMAT
        )

    store_path = args.store
    if store_path is None:
        store_path = os.environ.get('VLQDB_STORE', os.getcwd())
    store_path = Path(store_path)

    if not args.log_file:
        configure_logging_from_settings(StoreSettings(store_path))

    try:
        args.method(store_path, args)
    except (ValueError, EOFError, FileNotFoundError) as e:
        print(f"vlqdb: {e}", file=sys.stderr)
        sys.exit(1)


@no_store
def _encode(args):
    encode = encode_int if args.width == INT_BITS else encode_long
    for value in args.values:
        print(encode(value).hex())


@no_store
def _decode(args):
    for value in iter_decode(bytes.fromhex(args.data), args.width):
        print(value)


@no_store
def _dump(args):
    data = Path(args.file).read_bytes()
    for value in iter_decode(data, args.width):
        print(value)


@needs_store
def _put(store: RecordStore, args):
    store.put(args.name, [field.encode('utf-8') for field in args.fields])


@needs_store
def _get(store: RecordStore, args):
    fields = store.get(args.name)
    if fields is None:
        print(f"vlqdb: record not found: {args.name}", file=sys.stderr)
        sys.exit(1)
    for field in fields:
        print(field.decode('utf-8', errors='backslashreplace'))


@needs_store
def _delete(store: RecordStore, args):
    if not store.delete(args.name):
        print(f"vlqdb: record not found: {args.name}", file=sys.stderr)
        sys.exit(1)


@needs_store
def _inspect(store: RecordStore, args):
    for line in store.inspect():
        print(line)


if __name__ == '__main__':
    vlqdb_main()
