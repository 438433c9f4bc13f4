from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union
from specdecode.core.exceptions import AppException
from specdecode.domain.models.spectrum import Spectrum

WARNING = "warning"
ERROR = "error"


@dataclass(frozen=True)
class BlockDescriptor:
    tag: bytes
    absolute_offset: int
    declared_length: Optional[int] = None


@dataclass(frozen=True)
class Diagnostic:
    level: str
    kind: str
    message: str
    offset: Optional[int] = None

    def __str__(self):
        where = f" @{self.offset}" if self.offset is not None else ""
        return f"[{self.level}] {self.kind}{where}: {self.message}"


class DecodeTrace:
    """Ordered record of offsets and values resolved while decoding one buffer."""

    def __init__(self):
        self._entries: Dict[str, Union[int, float, str]] = {}

    def record(self, key: str, value: Union[int, float, str]) -> None:
        self._entries[key] = value

    def get(self, key: str, default=None):
        return self._entries.get(key, default)

    def items(self):
        return self._entries.items()

    def to_dict(self) -> Dict[str, Union[int, float, str]]:
        return dict(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


class Diagnostics:
    """Collects recoverable problems found during one decode call."""

    def __init__(self):
        self.entries: List[Diagnostic] = []

    def warn(self, kind: str, message: str, offset: Optional[int] = None) -> None:
        self.entries.append(Diagnostic(WARNING, kind, message, offset))

    def __iter__(self):
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


@dataclass
class DecodeContext:
    """Per-call accumulator handed to a decoder; never shared between calls."""
    source: str = ""
    trace: DecodeTrace = field(default_factory=DecodeTrace)
    diagnostics: Diagnostics = field(default_factory=Diagnostics)


@dataclass
class DecodeResult:
    source: str
    spectra: List[Spectrum] = field(default_factory=list)
    error: Optional[AppException] = None
    diagnostics: List[Diagnostic] = field(default_factory=list)
    trace: Dict[str, Union[int, float, str]] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, context: DecodeContext, spectra: List[Spectrum]) -> "DecodeResult":
        return cls(
            source=context.source,
            spectra=list(spectra),
            diagnostics=list(context.diagnostics),
            trace=context.trace.to_dict(),
        )

    @classmethod
    def failure(cls, context: DecodeContext, error: AppException) -> "DecodeResult":
        diagnostics = list(context.diagnostics)
        kind = getattr(error, "kind", type(error).__name__)
        diagnostics.append(Diagnostic(ERROR, kind, error.message, getattr(error, "offset", None)))
        return cls(
            source=context.source,
            error=error,
            diagnostics=diagnostics,
            trace=context.trace.to_dict(),
        )

    def __repr__(self):
        state = "ok" if self.ok else f"error={self.error.message!r}"
        return f"DecodeResult(source={self.source}, spectra={len(self.spectra)}, {state})"
