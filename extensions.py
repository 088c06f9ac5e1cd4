import logging
import struct

from gif_stream import read_bytes, read_byte, read_sub_blocks, discard_sub_blocks

logger = logging.getLogger(__name__)

PLAIN_TEXT_LABEL = 0x01
GRAPHIC_CONTROL_LABEL = 0xF9
COMMENT_LABEL = 0xFE
APPLICATION_LABEL = 0xFF

# size byte, packed fields, delay, transparent index, terminator
GRAPHIC_CONTROL_STRUCT = "<BBHBB"
# size byte, grid left/top/width/height, cell width/height, fg/bg index
PLAIN_TEXT_STRUCT = "<B4H4B"
# size byte, identifier, authentication code
APPLICATION_STRUCT = "<B8s3s"

LOOPING_APPLICATIONS = ((b"NETSCAPE", b"2.0"), (b"ANIMEXTS", b"1.0"))

# 1 (leave in place) composites the same way as 0
DISPOSE_NONE = 0
DISPOSE_BACKGROUND = 2
DISPOSE_PREVIOUS = 3

class GraphicControl:
    def __init__(self, disposal=DISPOSE_NONE, user_input=False, transparency=False, tindex=0, delay=0):
        self.disposal = disposal
        self.user_input = user_input
        self.transparency = transparency
        self.tindex = tindex
        self.delay = delay

    def __repr__(self) -> str:
        return (
            f"GraphicControl(disposal={self.disposal}, user_input={self.user_input}, "
            f"transparency={self.transparency}, tindex={self.tindex}, delay={self.delay})"
        )

class ExtensionHooks:
    """Callbacks fired while extension blocks are parsed.

    Each hook runs with the stream positioned at the block's sub-block data
    and may consume it (see gif_stream.read_sub_blocks); the position is restored
    afterwards and the sub-blocks are skipped regardless.
    """

    def plain_text(self, gif, x, y, w, h, fg, bg, cell_width, cell_height) -> None:
        pass

    def comment(self, gif) -> None:
        pass

    def application(self, gif, app_id: bytes, auth_code: bytes) -> None:
        pass

def _call_at_sub_blocks(gif, hook, *args) -> None:
    sub_block = gif.stream.tell()
    hook(gif, *args)
    gif.stream.seek(sub_block)

def read_graphic_control(gif) -> GraphicControl:
    _, flags, delay, tindex, _ = struct.unpack(
        GRAPHIC_CONTROL_STRUCT, read_bytes(gif.stream, struct.calcsize(GRAPHIC_CONTROL_STRUCT))
    )
    return GraphicControl(
        disposal=(flags >> 2) & 3,
        user_input=bool(flags & 2),
        transparency=bool(flags & 1),
        tindex=tindex,
        delay=delay,
    )

def read_plain_text(gif) -> None:
    _, x, y, w, h, cell_width, cell_height, fg, bg = struct.unpack(
        PLAIN_TEXT_STRUCT, read_bytes(gif.stream, struct.calcsize(PLAIN_TEXT_STRUCT))
    )
    _call_at_sub_blocks(gif, gif.hooks.plain_text, x, y, w, h, fg, bg, cell_width, cell_height)
    discard_sub_blocks(gif.stream)

def read_comment(gif) -> None:
    _call_at_sub_blocks(gif, gif.hooks.comment)
    discard_sub_blocks(gif.stream)

def read_application(gif) -> None:
    _, app_id, auth_code = struct.unpack(
        APPLICATION_STRUCT, read_bytes(gif.stream, struct.calcsize(APPLICATION_STRUCT))
    )
    if (app_id, auth_code) in LOOPING_APPLICATIONS:
        for block in read_sub_blocks(gif.stream):
            if len(block) == 3 and block[0] == 1:
                gif.loop_count = block[1] | (block[2] << 8)
        return
    _call_at_sub_blocks(gif, gif.hooks.application, app_id, auth_code)
    discard_sub_blocks(gif.stream)

def read_extension(gif) -> None:
    label = read_byte(gif.stream)
    if label == GRAPHIC_CONTROL_LABEL:
        gif.gce = read_graphic_control(gif)
    elif label == PLAIN_TEXT_LABEL:
        read_plain_text(gif)
    elif label == COMMENT_LABEL:
        read_comment(gif)
    elif label == APPLICATION_LABEL:
        read_application(gif)
    else:
        logger.warning("unknown extension label 0x%02X at offset %d, skipping its sub-blocks",
                       label, gif.stream.tell() - 1)
        discard_sub_blocks(gif.stream)
