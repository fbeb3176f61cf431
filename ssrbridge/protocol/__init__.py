"""Line-delimited stdio protocol between the bridge client and the render worker."""

from .framing import MAX_LINE_BYTES, TAG, decode_frame, encode_frame, is_frame
from .messages import RenderRequest, RenderResponse
from .serialization import (
    PAGE_REQUIRED_MESSAGE,
    decode_request_payload,
    decode_response_payload,
    encode_request_line,
    encode_response_line,
    response_from_error,
    response_from_page,
    response_payload,
    safe_dict,
    to_render_error,
    to_rendered_page,
)
from .stream import OversizedLineError, read_frame_line

__all__ = [
    "MAX_LINE_BYTES",
    "OversizedLineError",
    "PAGE_REQUIRED_MESSAGE",
    "TAG",
    "RenderRequest",
    "RenderResponse",
    "decode_frame",
    "decode_request_payload",
    "decode_response_payload",
    "encode_frame",
    "encode_request_line",
    "encode_response_line",
    "is_frame",
    "read_frame_line",
    "response_from_error",
    "response_from_page",
    "response_payload",
    "safe_dict",
    "to_render_error",
    "to_rendered_page",
]
