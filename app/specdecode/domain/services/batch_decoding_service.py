import asyncio
from typing import Any, List, Optional
from specdecode.domain.services.decoder_service import DecoderService
from specdecode.domain.models.decode_result import DecodeContext, DecodeResult
from specdecode.config.logging import get_logger
from specdecode.core.exceptions import AppException, ValidationException

logger = get_logger(__name__)


class BatchDecodingService:
    """
    Service for decoding many files concurrently.
    Every input path yields exactly one DecodeResult, in input order.
    """

    def __init__(self, decoder_service: DecoderService, max_concurrency: Optional[int] = None):
        self.decoder_service = decoder_service
        self.max_concurrency = max_concurrency or decoder_service.settings.batch_max_concurrency

    async def process_batch(self, paths: List[str], file_format: Optional[str] = None, **options: Any) -> List[DecodeResult]:
        """
        Decode a batch of files.

        Args:
            paths: Files to decode
            file_format: Decoder to use for all files; detected per file when omitted
            **options: Per-call decoder options

        Returns:
            One DecodeResult per path; failures are results, never exceptions

        Raises:
            ValidationException: If no paths are given
        """
        if paths is None:
            raise ValidationException("No files provided for batch decoding")
        if not paths:
            logger.warning("No files provided for decoding")
            return []

        logger.info(f"Decoding {len(paths)} files")
        semaphore = asyncio.Semaphore(min(self.max_concurrency, len(paths)))

        async def worker(path: str) -> DecodeResult:
            async with semaphore:
                try:
                    return await self.decoder_service.decode_file_async(path, file_format, **options)
                except AppException as e:
                    logger.error(f"Error decoding file {path}: {e.message}")
                    return DecodeResult.failure(DecodeContext(source=path), e)

        results = await asyncio.gather(*(worker(p) for p in paths))

        failed = sum(1 for r in results if not r.ok)
        logger.info(f"Batch decoding completed. {len(results) - failed} succeeded, {failed} failed.")
        return list(results)

    def process_batch_sync(self, paths: List[str], file_format: Optional[str] = None, **options: Any) -> List[DecodeResult]:
        return asyncio.run(self.process_batch(paths, file_format, **options))
