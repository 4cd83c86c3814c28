"""IDX remediation flows."""

from idxclient.core.idx.authentication import (
    AuthenticationOptions,
    AuthenticationResponse,
    AuthenticationStatus,
)
from idxclient.core.idx.client import IDXClient, Token
from idxclient.core.idx.context import (
    SessionContext,
    generate_code_challenge,
    generate_code_verifier,
    generate_state,
)
from idxclient.core.idx.document import (
    CancelMarker,
    CurrentAuthenticatorEnrollment,
    FieldOption,
    FormField,
    Message,
    NestedForm,
    RemediationDocument,
    RemediationOption,
    SuccessMarker,
)
from idxclient.core.idx.password_reset import (
    IdentifyRequest,
    ResetPasswordResponse,
    ResetPasswordStep,
    SecurityQuestion,
)

__all__ = [
    # Client
    "IDXClient",
    "Token",
    # Session
    "SessionContext",
    "generate_code_challenge",
    "generate_code_verifier",
    "generate_state",
    # Document
    "CancelMarker",
    "CurrentAuthenticatorEnrollment",
    "FieldOption",
    "FormField",
    "Message",
    "NestedForm",
    "RemediationDocument",
    "RemediationOption",
    "SuccessMarker",
    # Flows
    "AuthenticationOptions",
    "AuthenticationResponse",
    "AuthenticationStatus",
    "IdentifyRequest",
    "ResetPasswordResponse",
    "ResetPasswordStep",
    "SecurityQuestion",
]
