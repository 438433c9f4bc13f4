import numpy as np
from specdecode.core.exceptions import SpectrumValidationException, ValidationException


def validate_spectrum_data(wave_numbers: np.ndarray, amplitudes: np.ndarray) -> None:
    """Raise SpectrumValidationException if the two axes cannot be paired."""
    if len(wave_numbers) != len(amplitudes):
        raise SpectrumValidationException(
            f"Wave numbers ({len(wave_numbers)}) and amplitudes ({len(amplitudes)}) differ in length."
        )


def validate_spectrum(spectrum, allow_empty: bool = True) -> None:
    """
    Sanity checks for a decoded spectrum.

    Args:
        spectrum: Spectrum to check
        allow_empty: Whether a spectrum without points is acceptable

    Raises:
        SpectrumValidationException: If any validation fails
    """
    validate_spectrum_data(spectrum.wave_numbers, spectrum.amplitudes)
    if not allow_empty and len(spectrum) == 0:
        raise SpectrumValidationException(f"Spectrum '{spectrum.id}' has no points.")
    if np.any(np.isinf(spectrum.wave_numbers)):
        raise SpectrumValidationException(f"Spectrum '{spectrum.id}' has infinite wave numbers.")


def validate_start_and_max(start: int, max_spectra: int) -> None:
    """Row selection used by multi-record formats: 1-based start, -1 for no limit."""
    if start < 1:
        raise ValidationException("start must be at least 1")
    if max_spectra == 0 or max_spectra < -1:
        raise ValidationException("max must be -1 (unlimited) or a positive number")
