from specdecode.domain.repositories.spectrum_repository import SpectrumRepository
from specdecode.config.settings import Settings, get_settings
from specdecode.config.logging import get_logger
from specdecode.core.exceptions import FileNotFoundException, FileReadException
import os
from typing import List

logger = get_logger(__name__)


class FileSpectrumRepository(SpectrumRepository):
    """
    File-based repository for raw spectrometer files on the local file system.
    """
    def __init__(self, config: Settings = None):
        self.config = config or get_settings()

    def load(self, path: str) -> bytes:
        if not os.path.isfile(path):
            raise FileNotFoundException(path)
        try:
            size = os.path.getsize(path)
            if size > self.config.max_file_size:
                raise FileReadException(path, f"File size {size} exceeds limit of {self.config.max_file_size} bytes")
            with open(path, "rb") as f:
                data = f.read()
        except OSError as e:
            logger.error(f"Error reading file {path}: {e}", exc_info=True)
            raise FileReadException(path, str(e))
        logger.debug(f"Loaded {len(data)} bytes from {path}")
        return data

    def list_files(self, directory: str, extensions: List[str] = None) -> List[str]:
        if not os.path.isdir(directory):
            raise FileNotFoundException(directory)
        allowed = [ext.lower() for ext in extensions] if extensions else None
        files = []
        for entry in sorted(os.listdir(directory)):
            path = os.path.join(directory, entry)
            if not os.path.isfile(path):
                continue
            if allowed is not None and os.path.splitext(entry)[1].lower() not in allowed:
                continue
            files.append(path)
        return files
