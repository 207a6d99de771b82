import base64

from upload_queue.converter.base import BaseConverter, ContentReader, ConversionError
from upload_queue.converter.models import ConversionResult, ConvertedEvent
from upload_queue.database.models import Record


class RawConverter(BaseConverter):
    """Emits one event per content file carrying the file bytes unchanged."""

    source_type = "raw"
    topic = "upload_raw_file"

    def convert(self, record: Record, read_content: ContentReader) -> ConversionResult:
        if not record.contents:
            raise ConversionError(f"Record {record.id} has no content to convert")
        result = ConversionResult(record_id=record.id)

        key = {
            "projectId": record.project_id,
            "userId": record.user_id,
            "sourceId": record.source_id,
        }
        for content in record.contents:
            data = read_content(content)
            result.events.append(
                ConvertedEvent(
                    topic=self.topic,
                    key=key,
                    value={
                        "fileName": content.file_name,
                        "contentType": content.content_type,
                        "size": len(data),
                        "data": base64.b64encode(data).decode("ascii"),
                    },
                )
            )
            result.log(f"Converted {content.file_name} ({len(data)} bytes)")
        return result
