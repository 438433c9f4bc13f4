"""
Binary and text decoders for spectrometer file formats.
Each decoder turns one in-memory buffer into a list of spectra.
"""

from .base import BaseDecoder
from .opus import OpusDecoder
from .spc import SpcDecoder
from .spa import SpaDecoder
from .cal import CalDecoder
from .asc import AscDecoder
from .relab import RelabDecoder
from .speclib import SpecLibDecoder
from .factory import DecoderFactory

__all__ = [
    'BaseDecoder',
    'OpusDecoder',
    'SpcDecoder',
    'SpaDecoder',
    'CalDecoder',
    'AscDecoder',
    'RelabDecoder',
    'SpecLibDecoder',
    'DecoderFactory'
]
