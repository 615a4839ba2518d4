from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response
from pydantic import ValidationError

from msgbridge.api.schemas import CreateMessageRequest, ErrorResponse, MessageDTO
from msgbridge.core.auth import Credential, require_credential
from msgbridge.observability.metrics import record_message_created
from msgbridge.services import messages as message_service
from msgbridge.services.errors import DecodeFailure
from msgbridge.services.messages import Message, MessageStore
from msgbridge.services.timestamps import TimestampCodec

router = APIRouter(prefix="/messages", tags=["messages"])

# The body is read by hand after authorization, so it is documented here
# rather than inferred from a pydantic parameter.
CREATE_REQUEST_BODY = {
    "requestBody": {
        "required": True,
        "content": {"application/json": {"schema": CreateMessageRequest.model_json_schema()}},
    }
}


def get_store(request: Request) -> MessageStore:
    return request.app.state.store


def get_codec(request: Request) -> TimestampCodec:
    return request.app.state.codec


def decode_create_request(body: bytes) -> CreateMessageRequest:
    try:
        return CreateMessageRequest.model_validate_json(body)
    except ValidationError as exc:
        raise DecodeFailure(f"invalid create payload ({exc.error_count()} errors)") from exc


@router.get("", response_model=list[MessageDTO], responses={500: {"model": ErrorResponse}})
def read_messages(
    store: MessageStore = Depends(get_store),
    codec: TimestampCodec = Depends(get_codec),
) -> list[MessageDTO]:
    return [MessageDTO.from_message(row, codec) for row in message_service.list_messages(store)]


@router.post(
    "",
    status_code=200,
    response_class=Response,
    response_description="Message created",
    openapi_extra=CREATE_REQUEST_BODY,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def create_message(
    request: Request,
    _credential: Credential = Depends(require_credential),
    store: MessageStore = Depends(get_store),
) -> Response:
    payload = decode_create_request(await request.body())
    message = Message(content=payload.content, timestamp=request.app.state.clock())
    message_service.create_message(store, message)
    record_message_created(request.app.state.settings)
    return Response(status_code=200)
