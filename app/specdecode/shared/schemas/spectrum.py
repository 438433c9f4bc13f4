from typing import List, Optional, Dict, Any, Union
from pydantic import BaseModel, ConfigDict, Field
from specdecode.domain.models.decode_result import DecodeResult
from specdecode.domain.models.spectrum import Spectrum
from specdecode.shared.utils.helpers import sanitize_for_json


class SpectrumSchema(BaseModel):
    """
    Pydantic schema for serializing a decoded Spectrum, points included.
    """
    id: str = Field("", description="Sample identifier, may be empty or synthesized")
    file_name: Optional[str] = Field(None, description="Source file name, if applicable")
    wave_numbers: List[Optional[float]] = Field(..., description="Wave number of every point, in decode order")
    amplitudes: List[Optional[float]] = Field(..., description="Amplitude of every point, in decode order")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Typed metadata fields")

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "id": "sample-01",
            "file_name": "sample-01.spc",
            "wave_numbers": [4000.0, 3998.0, 3996.0],
            "amplitudes": [0.12, 0.13, 0.11],
            "metadata": {"Instrument": "NIRSystems", "Multi File": False}
        }
    })

    @classmethod
    def from_domain(cls, spectrum: Spectrum) -> "SpectrumSchema":
        return cls(
            id=spectrum.id,
            file_name=spectrum.file_name,
            wave_numbers=sanitize_for_json(spectrum.wave_numbers),
            amplitudes=sanitize_for_json(spectrum.amplitudes),
            metadata=sanitize_for_json(spectrum.metadata.to_dict()),
        )


class SpectrumSummarySchema(BaseModel):
    """Spectrum without its points."""
    id: str = Field("", description="Sample identifier")
    num_points: int = Field(..., description="Number of decoded points")
    first_wave_number: Optional[float] = Field(None, description="Wave number of the first point")
    last_wave_number: Optional[float] = Field(None, description="Wave number of the last point")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Typed metadata fields")

    @classmethod
    def from_domain(cls, spectrum: Spectrum) -> "SpectrumSummarySchema":
        points = spectrum.points
        return cls(
            id=spectrum.id,
            num_points=len(points),
            first_wave_number=sanitize_for_json(points[0].wave_number) if points else None,
            last_wave_number=sanitize_for_json(points[-1].wave_number) if points else None,
            metadata=sanitize_for_json(spectrum.metadata.to_dict()),
        )


class DiagnosticSchema(BaseModel):
    level: str
    kind: str
    message: str
    offset: Optional[int] = None


class DecodeResultSchema(BaseModel):
    """Outcome of decoding one file."""
    source: str = Field(..., description="File name or path that was decoded")
    ok: bool = Field(..., description="Whether decoding succeeded")
    error: Optional[str] = Field(None, description="Message of the error that stopped decoding")
    spectra: List[Union[SpectrumSchema, SpectrumSummarySchema]] = Field(default_factory=list)
    diagnostics: List[DiagnosticSchema] = Field(default_factory=list)
    trace: Optional[Dict[str, Any]] = Field(None, description="Resolved offsets, when requested")

    @classmethod
    def from_domain(cls, result: DecodeResult, include_points: bool = False, include_trace: bool = False) -> "DecodeResultSchema":
        spectrum_schema = SpectrumSchema if include_points else SpectrumSummarySchema
        return cls(
            source=result.source,
            ok=result.ok,
            error=None if result.ok else result.error.message,
            spectra=[spectrum_schema.from_domain(s) for s in result.spectra],
            diagnostics=[
                DiagnosticSchema(level=d.level, kind=d.kind, message=d.message, offset=d.offset)
                for d in result.diagnostics
            ],
            trace=result.trace if include_trace else None,
        )
