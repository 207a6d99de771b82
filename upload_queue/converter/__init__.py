from upload_queue.converter.base import BaseConverter, ConversionError
from upload_queue.converter.factory import ConverterFactory
from upload_queue.converter.models import ConversionResult, ConvertedEvent

__all__ = [
    "BaseConverter",
    "ConversionError",
    "ConversionResult",
    "ConvertedEvent",
    "ConverterFactory",
]
