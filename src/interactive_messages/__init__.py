"""interactive-messages — route interactive message callbacks to handlers.

Button clicks, menu selections and dialog submissions arrive as webhook
payloads. The adapter matches each one to a registered handler and answers
within the caller's response budget, falling back to response_url
deliveries when the handler is slow or responds more than once.
"""

__version__ = "0.1.0"

from interactive_messages.adapter import MessageAdapter, create_message_adapter  # noqa: E402
from interactive_messages.auth.signature import ErrorCode  # noqa: E402
from interactive_messages.dispatcher.registry import RegistrationError  # noqa: E402
from interactive_messages.schemas.dispatch import DispatchResult  # noqa: E402
from interactive_messages.schemas.payload import (  # noqa: E402
    InteractionPayload,
    InvalidPayloadError,
    PayloadKind,
)

__all__ = [
    "DispatchResult",
    "ErrorCode",
    "InteractionPayload",
    "InvalidPayloadError",
    "MessageAdapter",
    "PayloadKind",
    "RegistrationError",
    "__version__",
    "create_message_adapter",
]
