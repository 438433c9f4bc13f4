import struct
from typing import Any, Optional
from specdecode.config.logging import get_logger
from specdecode.config.settings import Settings, get_settings
from specdecode.core.exceptions import ConfigurationException, SpecDecodeException, SpectrumValidationException
from specdecode.domain.models.decode_result import WARNING, DecodeContext, DecodeResult
from specdecode.domain.repositories.spectrum_repository import SpectrumRepository
from specdecode.domain.services.format_detection import detect_format
from specdecode.infrastructure.decoders.factory import DecoderFactory
from specdecode.shared.utils.byte_cursor import Buffer
from specdecode.shared.utils.validators import validate_spectrum
import asyncio

logger = get_logger(__name__)


class DecoderService:
    def __init__(
        self,
        decoder_factory: Optional[DecoderFactory] = None,
        file_repo: Optional[SpectrumRepository] = None,
        settings: Optional[Settings] = None,
    ):
        """Service for decoding spectrometer files. Injects decoder factory, repository and settings."""
        self.settings = settings or get_settings()
        self.decoder_factory = decoder_factory or DecoderFactory(self.settings)
        self.file_repo = file_repo

    def decode(self, buf: Buffer, file_format: Optional[str] = None, name: str = "", **options: Any) -> DecodeResult:
        """
        Decode one in-memory buffer.

        Args:
            buf: File content
            file_format: Decoder name (opus, spc, spa, cal, asc); detected when omitted
            name: File name, used for detection and synthesized IDs
            **options: Per-call decoder options overriding the settings

        Returns:
            DecodeResult with the spectra, or with the error that stopped decoding

        Raises:
            UnsupportedFormatError: If the format is unknown or cannot be detected
        """
        if not file_format:
            file_format = detect_format(name, buf)
        decoder = self.decoder_factory.get_decoder(file_format, **options)
        context = DecodeContext(source=name)
        logger.debug(f"Decoding {name or '<buffer>'} ({len(buf)} bytes) as {file_format}")

        try:
            spectra = decoder.decode(buf, context, name)
            for spectrum in spectra:
                validate_spectrum(spectrum)
        except SpecDecodeException as e:
            logger.error(f"Failed to decode {name or '<buffer>'} as {file_format}: {e.message}")
            result = DecodeResult.failure(context, e)
        except SpectrumValidationException as e:
            logger.error(f"Decoded spectrum from {name or '<buffer>'} failed validation: {e.message}")
            result = DecodeResult.failure(context, SpecDecodeException(e.message))
        except (struct.error, IndexError, ValueError) as e:
            logger.error(f"Unexpected error decoding {name or '<buffer>'} as {file_format}: {e}", exc_info=True)
            result = DecodeResult.failure(context, SpecDecodeException(f"Unexpected error: {e}"))
        else:
            result = DecodeResult.success(context, spectra)
            logger.info(f"Decoded {len(spectra)} spectra from {name or '<buffer>'} ({file_format})")

        self._log_diagnostics(result)
        return result

    def decode_file(self, path: str, file_format: Optional[str] = None, **options: Any) -> DecodeResult:
        """
        Load ``path`` through the repository and decode it.

        Raises:
            FileNotFoundException: If the file does not exist
            FileReadException: If the file cannot be read
            UnsupportedFormatError: If the format is unknown or cannot be detected
        """
        if self.file_repo is None:
            raise ConfigurationException("No file repository configured")
        buf = self.file_repo.load(path)
        return self.decode(buf, file_format, name=path, **options)

    async def decode_file_async(self, path: str, file_format: Optional[str] = None, **options: Any) -> DecodeResult:
        return await asyncio.to_thread(self.decode_file, path, file_format, **options)

    @staticmethod
    def _log_diagnostics(result: DecodeResult) -> None:
        for diagnostic in result.diagnostics:
            if diagnostic.level == WARNING:
                logger.warning(f"{result.source}: {diagnostic}")
