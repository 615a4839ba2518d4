from __future__ import annotations

from pydantic import BaseModel, ConfigDict, StrictInt, StrictStr

from msgbridge.services.messages import Message
from msgbridge.services.result import Ok, Result
from msgbridge.services.timestamps import IsoSecondsCodec, TimestampCodec

DEFAULT_CODEC: TimestampCodec = IsoSecondsCodec()


class MessageDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    content: StrictStr
    timestamp: StrictInt | StrictStr

    @classmethod
    def from_message(cls, message: Message, codec: TimestampCodec = DEFAULT_CODEC) -> MessageDTO:
        return cls(content=message.content, timestamp=codec.encode(message.timestamp))

    def to_message(self, codec: TimestampCodec = DEFAULT_CODEC) -> Result[Message]:
        decoded = codec.decode(self.timestamp)
        if isinstance(decoded, Ok):
            return Ok(Message(content=self.content, timestamp=decoded.value))
        return decoded


class CreateMessageRequest(BaseModel):
    content: StrictStr


class ErrorResponse(BaseModel):
    error_code: str
    message: str
    request_id: str | None = None
