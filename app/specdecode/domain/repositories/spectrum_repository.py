from abc import ABC, abstractmethod
from typing import List


class SpectrumRepository(ABC):
    """
    Abstract repository interface for raw spectrometer files.
    Follows the repository pattern for decoupling decoding from storage.

    All methods should raise appropriate exceptions when operations fail:
    - FileReadException: When file reading fails
    - FileNotFoundException: When files are not found
    """

    @abstractmethod
    def load(self, path: str) -> bytes:
        """
        Read the complete content of a file.

        Args:
            path: Location of the file

        Returns:
            The file content

        Raises:
            FileNotFoundException: If the file does not exist
            FileReadException: If the file cannot be read or is too large
        """
        pass

    @abstractmethod
    def list_files(self, directory: str, extensions: List[str] = None) -> List[str]:
        """
        List the files in ``directory``, optionally restricted to ``extensions``.

        Raises:
            FileNotFoundException: If the directory does not exist
        """
        pass
