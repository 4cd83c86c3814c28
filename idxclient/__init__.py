"""IDX client - interaction code flows for Okta Identity Engine."""

__version__ = "0.1.0"

from idxclient.core.config import IDXConfig, load_config  # noqa: E402
from idxclient.core.idx import (  # noqa: E402
    AuthenticationOptions,
    AuthenticationResponse,
    AuthenticationStatus,
    IdentifyRequest,
    IDXClient,
    ResetPasswordResponse,
    ResetPasswordStep,
    SecurityQuestion,
    SessionContext,
    Token,
)

__all__ = [
    "__version__",
    "AuthenticationOptions",
    "AuthenticationResponse",
    "AuthenticationStatus",
    "IDXClient",
    "IDXConfig",
    "IdentifyRequest",
    "ResetPasswordResponse",
    "ResetPasswordStep",
    "SecurityQuestion",
    "SessionContext",
    "Token",
    "load_config",
]
