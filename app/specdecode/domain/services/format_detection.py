from typing import Optional
from specdecode.config.logging import get_logger
from specdecode.core.exceptions import UnsupportedFormatError
from specdecode.infrastructure.decoders.factory import DecoderFactory
from specdecode.infrastructure.decoders.opus import has_opus_magic, looks_like_opus
from specdecode.shared.utils.byte_cursor import Buffer
from specdecode.shared.utils.helpers import file_extension

logger = get_logger(__name__)

EXTENSION_FORMATS = {
    ".spc": "spc",
    ".spa": "spa",
    ".cal": "cal",
    ".asc": "asc",
}


def detect_format(name: Optional[str], buf: Buffer) -> str:
    """
    Work out which decoder handles a file.

    OPUS files carry arbitrary extensions (``.0``, ``.1``, ...) and are recognised by
    content; the other formats by extension. A file without an extension that is
    not OPUS is treated as ASC.

    Raises:
        UnsupportedFormatError: If no decoder matches
    """
    if has_opus_magic(buf):
        logger.debug(f"{name}: OPUS magic number found")
        return "opus"

    ext = file_extension(name)
    if ext in EXTENSION_FORMATS:
        return EXTENSION_FORMATS[ext]

    if looks_like_opus(buf):
        logger.debug(f"{name}: OPUS AB block found")
        return "opus"
    if ext == "":
        return "asc"
    raise UnsupportedFormatError(ext or str(name), DecoderFactory.supported_formats())
