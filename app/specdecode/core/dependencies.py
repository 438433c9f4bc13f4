from functools import lru_cache

# Config imports
from specdecode.config.settings import Settings, get_settings

# Storage imports
from specdecode.infrastructure.storage.file_spectrum_repository import FileSpectrumRepository

# Decoder imports
from specdecode.infrastructure.decoders.factory import DecoderFactory

# Domain services imports
from specdecode.domain.services.decoder_service import DecoderService
from specdecode.domain.services.batch_decoding_service import BatchDecodingService

# Settings dependency
@lru_cache()
def get_app_settings() -> Settings:
    """Get the application settings (singleton)."""
    return get_settings()

# Spectrum repository dependency (file-based)
def get_file_spectrum_repo(settings: Settings = None) -> FileSpectrumRepository:
    """Dependency to get file-based spectrum repository."""
    return FileSpectrumRepository(config=settings or get_app_settings())

# Decoder factory dependency
def get_decoder_factory(settings: Settings = None) -> DecoderFactory:
    """Dependency to get decoder factory."""
    return DecoderFactory(config=settings or get_app_settings())

# Service dependencies
def get_decoder_service(settings: Settings = None) -> DecoderService:
    """Dependency to get decoder service."""
    settings = settings or get_app_settings()
    return DecoderService(
        decoder_factory=get_decoder_factory(settings),
        file_repo=get_file_spectrum_repo(settings),
        settings=settings,
    )

def get_batch_decoding_service(settings: Settings = None) -> BatchDecodingService:
    """Dependency to get batch decoding service."""
    settings = settings or get_app_settings()
    return BatchDecodingService(get_decoder_service(settings), settings.batch_max_concurrency)
