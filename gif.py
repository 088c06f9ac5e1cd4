import logging
import struct
from typing import Self

import numpy as np
from PIL import Image

from compression import BitReader, lzw_decode, interlaced_row
from gif_errors import GifError, MalformedHeader, MissingGlobalColorTable, OutOfMemory
from gif_stream import read_bytes, read_byte
from extensions import ExtensionHooks, GraphicControl, read_extension, DISPOSE_BACKGROUND, DISPOSE_PREVIOUS

logger = logging.getLogger(__name__)

# -------- .gif file --------
# signature[6]   = b"GIF89a"
# width          u16
# height         u16
# descriptor     u8   (bit7 = GCT present, bits4-6 = depth-1, bits0-2 = log2(size)-1)
# background     u8
# aspect         u8
# gct            size * 3 bytes
GIF_SIGNATURE = b"GIF89a"
# logical screen descriptor, after the signature
SCREEN_STRUCT = "<HHBBB"
# left, top, width, height, packed fields
IMAGE_STRUCT = "<4HB"

EXTENSION_INTRODUCER = b"!"
IMAGE_SEPARATOR = b","
TRAILER = b";"

COLORS_MAX = 256

def pixel_bytes_for_depth(canvas_depth: int) -> int:
    if canvas_depth > 16:
        return 3
    elif canvas_depth > 8:
        return 2
    return 1

def reduce_colors(colors: np.ndarray, pixel_bytes: int) -> np.ndarray:
    if pixel_bytes == 3:
        return colors.copy()
    r = colors[:, 0].astype(np.uint16)
    g = colors[:, 1].astype(np.uint16)
    b = colors[:, 2].astype(np.uint16)
    if pixel_bytes == 2:
        # 565, big-endian
        packed = ((r >> 3) << 11) | ((g >> 2) << 5) | (b >> 3)
        return np.stack([packed >> 8, packed & 0xFF], axis=1).astype(np.uint8)
    # 332
    packed = (r & 0xE0) | ((g & 0xE0) >> 3) | (b >> 6)
    return packed.astype(np.uint8).reshape(-1, 1)

def read_color_table(stream, size: int) -> np.ndarray:
    table = np.zeros((COLORS_MAX, 3), dtype=np.uint8)
    table[:size] = np.frombuffer(read_bytes(stream, size * 3), dtype=np.uint8).reshape(size, 3)
    return table

class GifImage:
    def __init__(self, stream, width, height, depth, bgindex, aspect, gct, canvas_depth=24, hooks=None):
        self.stream = stream
        self.width = width
        self.height = height
        self.depth = depth
        self.bgindex = bgindex
        self.aspect = aspect
        self.pixel_bytes = pixel_bytes_for_depth(canvas_depth)
        self.canvas = np.zeros((height, width, self.pixel_bytes), dtype=np.uint8)
        self.frame = np.zeros((height, width), dtype=np.uint8)
        if bgindex:
            self.frame.fill(bgindex)
        self.gct = gct
        self.lct = None
        self.palette = gct
        self.hooks = hooks if hooks is not None else ExtensionHooks()
        self.gce = GraphicControl()
        self.loop_count = None
        self.fx = self.fy = self.fw = self.fh = 0
        self.frame_index = 0
        self.last_error = None
        self.anim_start = stream.tell()
        self._frame_pending = False

    @classmethod
    def open(cls, path, canvas_depth=24, hooks=None) -> Self:
        stream = open(path, "rb")
        try:
            # signature first, so short non-GIF files still report a bad header
            signature = stream.read(len(GIF_SIGNATURE))
            if signature[:3] != GIF_SIGNATURE[:3]:
                raise MalformedHeader("Not a GIF file (missing 'GIF' signature)")
            if signature != GIF_SIGNATURE:
                raise MalformedHeader(f"Unsupported GIF version: {signature[3:].decode('latin-1')!r} (expected '89a')")
            width, height, descriptor, bgindex, aspect = struct.unpack(
                SCREEN_STRUCT, read_bytes(stream, struct.calcsize(SCREEN_STRUCT))
            )
            if not descriptor & 0x80:
                raise MissingGlobalColorTable("GIF has no global color table")
            depth = ((descriptor >> 4) & 7) + 1
            gct = read_color_table(stream, 1 << ((descriptor & 7) + 1))
            return cls(stream, width, height, depth, bgindex, aspect, gct, canvas_depth, hooks)
        except Exception:
            stream.close()
            raise

    def close(self) -> None:
        self.stream.close()

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def get_delay(self) -> int:
        return self.gce.delay

    # -------- block dispatcher --------
    def get_frame(self) -> bool:
        self.dispose()
        self.gce = GraphicControl()
        try:
            while True:
                sep = self.stream.read(1)
                if not sep or sep == TRAILER:
                    return False
                if sep == EXTENSION_INTRODUCER:
                    read_extension(self)
                elif sep == IMAGE_SEPARATOR:
                    break
                else:
                    logger.warning("skipping stray byte 0x%02X at offset %d", sep[0], self.stream.tell() - 1)
            self.read_image()
        except GifError as e:
            logger.error("failed to decode frame %d: %s", self.frame_index + 1, e)
            self.last_error = e
            return False
        self.frame_index += 1
        self._frame_pending = True
        return True

    def read_image(self) -> None:
        self.fx, self.fy, self.fw, self.fh, flags = struct.unpack(
            IMAGE_STRUCT, read_bytes(self.stream, struct.calcsize(IMAGE_STRUCT))
        )
        interlace = bool(flags & 0x40)
        if flags & 0x80:
            self.lct = read_color_table(self.stream, 1 << ((flags & 7) + 1))
            self.palette = self.lct
        else:
            self.palette = self.gct
        logger.debug("image %dx%d at (%d, %d), interlace=%s, local palette=%s",
                     self.fw, self.fh, self.fx, self.fy, interlace, self.palette is self.lct)

        key_size = read_byte(self.stream)
        reader = BitReader(self.stream)
        try:
            pixels = lzw_decode(reader, key_size)
        except OutOfMemory:
            reader.drain()
            raise
        reader.drain()
        self.place_pixels(pixels, interlace)

    def place_pixels(self, pixels: bytearray, interlace: bool) -> None:
        if self.fw == 0:
            return
        x0, y0, x1, y1 = self.get_frame_bounds()
        # surplus pixels are dropped, missing ones leave the frame buffer as it was
        rows = min((len(pixels) + self.fw - 1) // self.fw, self.fh)
        for y in range(rows):
            row = self.fy + (interlaced_row(y, self.fh) if interlace else y)
            start = y * self.fw
            chunk = pixels[start:start + (x1 - x0)]
            if row < y1 and chunk:
                self.frame[row, x0:x0 + len(chunk)] = np.frombuffer(chunk, dtype=np.uint8)

    def get_frame_bounds(self) -> tuple[int, int, int, int]:
        x0 = min(self.fx, self.width)
        y0 = min(self.fy, self.height)
        return x0, y0, min(self.fx + self.fw, self.width), min(self.fy + self.fh, self.height)

    # -------- compositing --------
    def get_palette_colors(self) -> np.ndarray:
        return reduce_colors(self.palette, self.pixel_bytes)

    def render_frame_rect(self, target: np.ndarray) -> None:
        x0, y0, x1, y1 = self.get_frame_bounds()
        indices = self.frame[y0:y1, x0:x1]
        colors = self.get_palette_colors()[indices]
        if self.gce.transparency:
            mask = indices != self.gce.tindex
            target[y0:y1, x0:x1][mask] = colors[mask]
        else:
            target[y0:y1, x0:x1] = colors

    def dispose(self) -> None:
        if not self._frame_pending:
            return
        self._frame_pending = False
        if self.gce.disposal == DISPOSE_BACKGROUND:
            x0, y0, x1, y1 = self.get_frame_bounds()
            self.canvas[y0:y1, x0:x1] = self.get_palette_colors()[self.bgindex]
        elif self.gce.disposal == DISPOSE_PREVIOUS:
            # the canvas never received this frame
            pass
        else:
            self.render_frame_rect(self.canvas)

    def render(self, buffer) -> None:
        out = np.frombuffer(buffer, dtype=np.uint8)
        if out.size != self.canvas.size:
            raise ValueError(f"Unexpected buffer size: got {out.size}, expected {self.canvas.size}")
        out = out.reshape(self.canvas.shape)
        out[...] = self.canvas
        if self._frame_pending:
            self.render_frame_rect(out)

    def to_image(self) -> Image.Image:
        if self.pixel_bytes != 3:
            raise ValueError("to_image() requires a truecolor canvas (canvas_depth > 16)")
        buf = bytearray(self.canvas.size)
        self.render(buf)
        return Image.frombytes("RGB", (self.width, self.height), bytes(buf))

    def rewind(self) -> None:
        self.stream.seek(self.anim_start)
