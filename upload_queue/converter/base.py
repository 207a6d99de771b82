from abc import ABC, abstractmethod
from collections.abc import Callable

from upload_queue.converter.models import ConversionResult
from upload_queue.database.models import Record, RecordContent

ContentReader = Callable[[RecordContent], bytes]


class BaseConverter(ABC):
    """Contract for all converters of one source type."""

    source_type: str

    @abstractmethod
    def convert(self, record: Record, read_content: ContentReader) -> ConversionResult:
        """Convert every content file of a claimed record into events.

        Args:
            record: The claimed record, with its content descriptors.
            read_content: Loads the bytes of one content file.

        Returns:
            Converted events plus log lines to store with the record.

        Raises:
            ConversionError: if the content cannot be converted.
        """


class ConversionError(Exception):
    """Raised when a converter cannot interpret a record's content."""
