from typing import Optional, Sequence
from specdecode.core.exceptions import CountMismatchError
from specdecode.domain.models.metadata import Metadata
from specdecode.domain.models.spectrum import Spectrum, SpectrumPoint


def assemble(
    spectrum_id: str,
    wave_numbers: Sequence[float],
    amplitudes: Sequence[float],
    metadata: Optional[Metadata] = None,
    declared_count: Optional[int] = None,
    file_name: Optional[str] = None,
) -> Spectrum:
    """
    Zip the two axes into points, in order, and attach metadata.

    Raises:
        CountMismatchError: If the axes differ in length, or disagree with ``declared_count``
    """
    if len(wave_numbers) != len(amplitudes):
        raise CountMismatchError(
            len(wave_numbers), len(amplitudes),
            f"Different no. of wave numbers ({len(wave_numbers)}) and amplitudes ({len(amplitudes)})",
        )
    if declared_count is not None and declared_count != len(amplitudes):
        raise CountMismatchError(declared_count, len(amplitudes))

    points = [SpectrumPoint(wn, amp) for wn, amp in zip(wave_numbers, amplitudes)]
    return Spectrum(id=spectrum_id, points=points, metadata=metadata, file_name=file_name)
