from typing import BinaryIO

from PIL import Image

from ..exceptions import DecodeError
from ..models import ImageInfo

# Everything Pillow raises for unreadable, truncated or hostile payloads.
# UnidentifiedImageError is an OSError.
DECODE_ERRORS = (OSError, SyntaxError, ValueError, Image.DecompressionBombError)


class PillowDecoder:
    """
    Image decoder backed by Pillow.

    Strategies:
      - Header: `Image.open` is lazy, it only parses the header, so size and
        mode are available without touching pixel data.
      - Full: `load()` forces the whole payload through the codec, which is
        what "valid" means.
    """

    def decode_header(self, stream: BinaryIO) -> ImageInfo:
        try:
            with Image.open(stream) as im:
                return ImageInfo(width=im.width, height=im.height, mode=im.mode, format=im.format)
        except DECODE_ERRORS as e:
            raise DecodeError(f"cannot read image header: {e}") from e

    def decode_full(self, stream: BinaryIO) -> ImageInfo:
        info = None
        try:
            with Image.open(stream) as im:
                # Header is good by now; keep it in case the payload is not
                info = ImageInfo(width=im.width, height=im.height, mode=im.mode, format=im.format)
                im.load()
                return info
        except DECODE_ERRORS as e:
            raise DecodeError(f"cannot decode image: {e}", info=info) from e
