from .apis.analysis_gateway import LLMConfigurationError
from .apis.chat import (
    chat,
    handle_chat,
    health,
    metrics,
    session_init,
)
from .apis.uploads import (
    handle_upload,
    upload,
)

__all__ = [
    "chat",
    "health",
    "metrics",
    "session_init",
    "upload",
    "handle_chat",
    "handle_upload",
    "LLMConfigurationError",
]
