from upload_queue.config.settings import Settings
from upload_queue.converter.base import BaseConverter
from upload_queue.converter.raw_converter import RawConverter


class ConverterFactory:
    """Creates converters for the source types a worker is configured with."""

    CONVERTERS: dict[str, type[BaseConverter]] = {
        RawConverter.source_type: RawConverter,
    }

    @classmethod
    def create(cls, source_type: str) -> BaseConverter:
        converter_cls = cls.CONVERTERS.get(source_type)
        if converter_cls is None:
            raise ValueError(
                f"Unknown source type '{source_type}'. Choose from: {list(cls.CONVERTERS)}"
            )
        return converter_cls()

    @classmethod
    def create_all(cls, settings: Settings) -> dict[str, BaseConverter]:
        """Create one converter per configured source type."""
        return {name: cls.create(name) for name in settings.supported_source_types}
