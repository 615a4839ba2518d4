from __future__ import annotations

from pydantic import AwareDatetime, BaseModel, ConfigDict, StrictInt, StrictStr

from msgbridge.services.result import Ok, Result
from msgbridge.services.timestamps import EpochMillisCodec, TimestampCodec

DEFAULT_CODEC: TimestampCodec = EpochMillisCodec()


class Message(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: str
    timestamp: AwareDatetime

    def to_dto(self, codec: TimestampCodec = DEFAULT_CODEC) -> MessageDTO:
        return MessageDTO(value=self.value, timestamp=codec.encode(self.timestamp))


class MessageDTO(BaseModel):
    """Wire shape of a message returned by the remote messages API."""

    model_config = ConfigDict(frozen=True)

    value: StrictStr
    timestamp: StrictInt | StrictStr

    def to_message(self, codec: TimestampCodec = DEFAULT_CODEC) -> Result[Message]:
        decoded = codec.decode(self.timestamp)
        if isinstance(decoded, Ok):
            return Ok(Message(value=self.value, timestamp=decoded.value))
        return decoded
