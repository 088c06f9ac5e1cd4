import logging

from gif_errors import CorruptImageData, OutOfMemory
from gif_stream import read_byte, skip_bytes, discard_sub_blocks

logger = logging.getLogger(__name__)

MAX_BITS = 12
MAX_ENTRIES = (1 << MAX_BITS)
NO_PREFIX = -1

class EndOfData(Exception):
    pass

# -------- bit reader --------
# Codes are packed LSB-first into length-prefixed sub-blocks; a code may
# straddle both byte and sub-block boundaries.
class BitReader:
    def __init__(self, stream):
        self.stream = stream
        self.sub_len = 0
        self.bits = 0
        self.nbits = 0
        self.exhausted = False

    def _next_byte(self) -> int:
        if self.sub_len == 0:
            if self.exhausted:
                raise EndOfData()
            self.sub_len = read_byte(self.stream)
            if self.sub_len == 0:
                self.exhausted = True
                raise EndOfData()
        self.sub_len -= 1
        return read_byte(self.stream)

    def read(self, width: int) -> int:
        while self.nbits < width:
            self.bits |= self._next_byte() << self.nbits
            self.nbits += 8
        key = self.bits & ((1 << width) - 1)
        self.bits >>= width
        self.nbits -= width
        return key

    def drain(self) -> None:
        if self.exhausted:
            return
        skip_bytes(self.stream, self.sub_len)
        self.sub_len = 0
        discard_sub_blocks(self.stream)
        self.exhausted = True

# -------- code table --------
class CodeTable:
    def __init__(self, key_size: int):
        self.clear_code = 1 << key_size
        self.stop_code = self.clear_code + 1
        self.root_count = self.clear_code + 2
        self.initial_width = key_size + 1
        # (length, prefix, suffix); the two sentinels never get expanded
        self.entries = [(1, NO_PREFIX, key) for key in range(self.clear_code)]
        self.entries += [(0, NO_PREFIX, 0), (0, NO_PREFIX, 0)]
        self.frozen = False

    def __len__(self) -> int:
        return len(self.entries)

    def reset(self) -> None:
        del self.entries[self.root_count:]
        self.frozen = False

    def add(self, prefix: int, suffix: int) -> None:
        length = self.entries[prefix][0] + 1
        try:
            self.entries.append((length, prefix, suffix))
        except MemoryError as e:
            raise OutOfMemory(f"cannot grow LZW code table past {len(self.entries)} entries") from e
        if len(self.entries) == MAX_ENTRIES:
            self.frozen = True

    def first_symbol(self, key: int) -> int:
        _, prefix, suffix = self.entries[key]
        while prefix != NO_PREFIX:
            _, prefix, suffix = self.entries[prefix]
        return suffix

    def expand(self, key: int, out: bytearray) -> int:
        length, prefix, suffix = self.entries[key]
        pos = len(out) + length - 1
        out.extend(bytes(length))
        while True:
            out[pos] = suffix
            if prefix == NO_PREFIX:
                return suffix
            _, prefix, suffix = self.entries[prefix]
            pos -= 1

# -------- LZW decoding --------
def lzw_decode(reader, key_size: int) -> bytearray:
    if not 1 <= key_size < MAX_BITS:
        raise CorruptImageData(f"invalid LZW minimum code size: {key_size}")

    table = CodeTable(key_size)
    width = table.initial_width
    out = bytearray()
    prev = None

    while True:
        try:
            key = reader.read(width)
        except EndOfData:
            logger.debug("image data ended without a stop code after %d pixels", len(out))
            break

        if key == table.clear_code:
            table.reset()
            width = table.initial_width
            prev = None
            continue
        if key == table.stop_code:
            break

        count = len(table)
        if key < count:
            first = table.expand(key, out)
            if prev is not None and not table.frozen:
                table.add(prev, first)
        elif key == count and prev is not None and not table.frozen:
            # code refers to the entry being built: its string starts like prev's
            table.add(prev, table.first_symbol(prev))
            table.expand(key, out)
        else:
            raise CorruptImageData(f"invalid LZW code {key} (table has {count} entries)")

        if len(table) == (1 << width) and width < MAX_BITS:
            width += 1
        prev = key

    return out

# -------- interlacing --------
# pass 1: rows 0, 8, 16, ...; pass 2: 4, 12, ...; pass 3: 2, 6, ...; pass 4: 1, 3, ...
INTERLACE_PASSES = ((0, 8), (4, 8), (2, 4), (1, 2))

def interlaced_row(y: int, height: int) -> int:
    for start, step in INTERLACE_PASSES:
        rows = (height - start + step - 1) // step if height > start else 0
        if y < rows:
            return start + y * step
        y -= rows
    raise IndexError("row outside image")
