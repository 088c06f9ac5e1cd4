from gif_errors import TruncatedRead

# -------- checked stream reads --------
def read_bytes(stream, length: int) -> bytes:
    data = stream.read(length)
    if len(data) < length:
        raise TruncatedRead(f"unexpected end of file: wanted {length} bytes, got {len(data)}")
    return data

def read_byte(stream) -> int:
    return read_bytes(stream, 1)[0]

def skip_bytes(stream, length: int) -> None:
    # read rather than seek: seeking past EOF succeeds silently
    read_bytes(stream, length)

# -------- sub-blocks --------
def read_sub_blocks(stream):
    size = read_byte(stream)
    while size:
        yield read_bytes(stream, size)
        size = read_byte(stream)

def discard_sub_blocks(stream) -> None:
    size = read_byte(stream)
    while size:
        skip_bytes(stream, size)
        size = read_byte(stream)
