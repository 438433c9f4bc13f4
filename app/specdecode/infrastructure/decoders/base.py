from typing import Any, List, Tuple
from specdecode.domain.models.decode_result import DecodeContext
from specdecode.domain.models.spectrum import Spectrum
from specdecode.shared.utils.byte_cursor import Buffer


class BaseDecoder:
    """
    Abstract base decoder interface. Decoders are synchronous and keep no state
    between calls; everything produced while decoding goes into the context.
    """
    format_name: str = ""
    extensions: Tuple[str, ...] = ()

    def __init__(self, config=None, **options: Any):
        self.config = config
        self.options = options

    def option(self, name: str, config_attr: str = None, default: Any = None) -> Any:
        """Per-call option, then the settings attribute, then ``default``."""
        value = self.options.get(name)
        if value is not None:
            return value
        if self.config is not None:
            value = getattr(self.config, config_attr or name, None)
            if value is not None:
                return value
        return default

    def decode(self, buf: Buffer, context: DecodeContext, name: str = "") -> List[Spectrum]:
        raise NotImplementedError("Subclasses must implement decode()")
