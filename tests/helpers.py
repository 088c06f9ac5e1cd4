import struct

# -------- LZW encoding (test fixtures only) --------
def lzw_codes(indices, key_size, reset_when_full=True):
    clear = 1 << key_size
    stop = clear + 1
    roots = {(i,): i for i in range(clear)}
    table = dict(roots)
    width = key_size + 1
    next_code = stop + 1
    codes = [(clear, width)]
    prefix = ()

    for idx in indices:
        candidate = prefix + (idx,)
        if candidate in table:
            prefix = candidate
            continue
        codes.append((table[prefix], width))
        if next_code < 4096:
            table[candidate] = next_code
            next_code += 1
            if next_code - 1 == (1 << width) and width < 12:
                width += 1
        elif reset_when_full:
            codes.append((clear, width))
            table = dict(roots)
            width = key_size + 1
            next_code = stop + 1
        prefix = (idx,)

    if prefix:
        codes.append((table[prefix], width))
        # the decoder still adds an entry for the last code
        if next_code == (1 << width) and width < 12:
            width += 1
    codes.append((stop, width))
    return codes

def pack_codes(codes) -> bytes:
    data = 0
    data_len = 0
    out = bytearray()
    for code, width in codes:
        data |= code << data_len
        data_len += width
        while data_len >= 8:
            out.append(data & 0xFF)
            data >>= 8
            data_len -= 8
    if data_len:
        out.append(data)
    return bytes(out)

def lzw_encode(indices, key_size, reset_when_full=True) -> bytes:
    return pack_codes(lzw_codes(indices, key_size, reset_when_full))

def sub_blocks(data: bytes, size=255) -> bytes:
    out = bytearray()
    for pos in range(0, len(data), size):
        chunk = data[pos:pos + size]
        out.append(len(chunk))
        out += chunk
    out.append(0)
    return bytes(out)

# -------- GIF blocks --------
def table_bits(colors) -> int:
    return max(len(colors) - 1, 1).bit_length()

def color_bytes(colors) -> bytes:
    padded = list(colors) + [(0, 0, 0)] * ((1 << table_bits(colors)) - len(colors))
    return b"".join(bytes(c) for c in padded)

def header(width, height, palette, bgindex=0, version=b"89a") -> bytes:
    bits = table_bits(palette)
    descriptor = 0x80 | ((bits - 1) << 4) | (bits - 1)
    return b"GIF" + version + struct.pack("<HHBBB", width, height, descriptor, bgindex, 0) + color_bytes(palette)

def interlace_rows(height):
    return [y for start, step in ((0, 8), (4, 8), (2, 4), (1, 2)) for y in range(start, height, step)]

def image(indices, width, height, x=0, y=0, lct=None, interlace=False, key_size=None) -> bytes:
    rows = [list(indices[r * width:(r + 1) * width]) for r in range(height)]
    if interlace:
        rows = [rows[r] for r in interlace_rows(height)]
    stored = [i for row in rows for i in row]
    flags = 0x40 if interlace else 0
    if lct is not None:
        flags |= 0x80 | (table_bits(lct) - 1)
    if key_size is None:
        key_size = max(2, max(stored, default=0).bit_length())
    out = b"," + struct.pack("<4HB", x, y, width, height, flags)
    if lct is not None:
        out += color_bytes(lct)
    return out + bytes([key_size]) + sub_blocks(lzw_encode(stored, key_size))

def graphic_control(disposal=0, transparency=False, tindex=0, delay=0, user_input=False) -> bytes:
    flags = (disposal << 2) | (2 if user_input else 0) | (1 if transparency else 0)
    return b"!\xf9\x04" + struct.pack("<BHB", flags, delay, tindex) + b"\x00"

def netscape(loops) -> bytes:
    return b"!\xff\x0bNETSCAPE2.0" + bytes([3, 1]) + struct.pack("<H", loops) + b"\x00"

def comment(text: bytes) -> bytes:
    return b"!\xfe" + sub_blocks(text)

def plain_text(x, y, w, h, cell_width, cell_height, fg, bg, text: bytes) -> bytes:
    return b"!\x01\x0c" + struct.pack("<4H4B", x, y, w, h, cell_width, cell_height, fg, bg) + sub_blocks(text)

def application(app_id: bytes, auth_code: bytes, data: bytes) -> bytes:
    return b"!\xff\x0b" + app_id + auth_code + sub_blocks(data)

TRAILER = b";"

def write_gif(path, *blocks):
    path.write_bytes(b"".join(blocks))
    return path
