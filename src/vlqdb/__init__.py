from .codec import (
    MAX_INT_BYTES,
    MAX_LONG_BYTES,
    MalformedVarint,
    decode_int,
    decode_long,
    encode_int,
    encode_long,
    encoded_size,
    iter_decode,
    pack_int,
    pack_long,
    unpack_int,
    unpack_long,
)
from .stream import ByteBufferSink, ByteBufferSource, FileByteSink, FileByteSource, SourceExhausted
from .options import CompressionType, Options
from .settings import StoreSettings
from .store import RecordStore
