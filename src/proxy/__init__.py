# Makes the folder importable as a package.
# Exports the gateway router, its CORS middleware and the SSE relay.

from .gateway import router, cors_middleware, validate_chat_request
from .sse import relay_sse, LineAssembler

__all__ = ["router", "cors_middleware", "validate_chat_request", "relay_sse", "LineAssembler"]
