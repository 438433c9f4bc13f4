from typing import Any, Dict, List, Type
from specdecode.core.exceptions import UnsupportedFormatError
from specdecode.infrastructure.decoders.asc import AscDecoder
from specdecode.infrastructure.decoders.base import BaseDecoder
from specdecode.infrastructure.decoders.cal import CalDecoder
from specdecode.infrastructure.decoders.opus import OpusDecoder
from specdecode.infrastructure.decoders.relab import RelabDecoder
from specdecode.infrastructure.decoders.spa import SpaDecoder
from specdecode.infrastructure.decoders.spc import SpcDecoder
from specdecode.infrastructure.decoders.speclib import SpecLibDecoder

DECODERS: Dict[str, Type[BaseDecoder]] = {
    OpusDecoder.format_name: OpusDecoder,
    SpcDecoder.format_name: SpcDecoder,
    SpaDecoder.format_name: SpaDecoder,
    CalDecoder.format_name: CalDecoder,
    AscDecoder.format_name: AscDecoder,
    RelabDecoder.format_name: RelabDecoder,
    SpecLibDecoder.format_name: SpecLibDecoder,
}


class DecoderFactory:
    """
    Factory for creating decoder instances based on format name.
    """
    def __init__(self, config=None):
        self.config = config

    @staticmethod
    def supported_formats() -> List[str]:
        return list(DECODERS)

    def get_decoder(self, file_format: str, **options: Any) -> BaseDecoder:
        decoder_class = DECODERS.get((file_format or "").lower())
        if decoder_class is None:
            raise UnsupportedFormatError(file_format, self.supported_formats())
        return decoder_class(self.config, **options)
