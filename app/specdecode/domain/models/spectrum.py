from typing import List, Optional
import numpy as np
from specdecode.domain.models.metadata import Metadata


class SpectrumPoint:
    """A single (wave number, amplitude) sample, both stored with float32 precision."""

    __slots__ = ("wave_number", "amplitude")

    def __init__(self, wave_number: float, amplitude: float):
        self.wave_number = float(np.float32(wave_number))
        self.amplitude = float(np.float32(amplitude))

    def __eq__(self, other):
        if not isinstance(other, SpectrumPoint):
            return NotImplemented
        return self.wave_number == other.wave_number and self.amplitude == other.amplitude

    def __repr__(self):
        return f"SpectrumPoint({self.wave_number}, {self.amplitude})"


class Spectrum:
    """
    Domain model representing a decoded spectrum.
    Points keep the order in which they were decoded; wave numbers need not be unique or sorted.
    """
    def __init__(
        self,
        id: str = "",
        points: Optional[List[SpectrumPoint]] = None,
        metadata: Optional[Metadata] = None,
        file_name: Optional[str] = None,
    ):
        self.id = id
        self.points = points if points is not None else []
        self.metadata = metadata if metadata is not None else Metadata()
        self.file_name = file_name

    @property
    def wave_numbers(self) -> np.ndarray:
        return np.array([p.wave_number for p in self.points], dtype=np.float32)

    @property
    def amplitudes(self) -> np.ndarray:
        return np.array([p.amplitude for p in self.points], dtype=np.float32)

    def __len__(self) -> int:
        return len(self.points)

    def __repr__(self):
        return (
            f"Spectrum(id={self.id}, file_name={self.file_name}, "
            f"points={len(self.points)}, fields={len(self.metadata)})"
        )
