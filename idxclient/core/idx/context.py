"""Session context for a single interaction.

Holds the PKCE verifier, the anti-forgery state and the interaction
handle issued by the interact endpoint.
"""

from __future__ import annotations

import base64
import hashlib
import secrets
from dataclasses import dataclass, field

CODE_VERIFIER_BYTES = 86
STATE_BYTES = 16
CODE_CHALLENGE_METHOD = "S256"


def _urlsafe_b64(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def generate_code_verifier() -> str:
    """Generate a PKCE code verifier.

    86 random bytes, URL-safe base64 encoded without padding, which
    gives a 115 character verifier within the 43-128 range of RFC 7636.
    """
    return _urlsafe_b64(secrets.token_bytes(CODE_VERIFIER_BYTES))


def generate_state() -> str:
    """Generate the anti-forgery state value (16 random bytes)."""
    return _urlsafe_b64(secrets.token_bytes(STATE_BYTES))


def generate_code_challenge(code_verifier: str) -> str:
    """Generate the S256 PKCE code challenge for a verifier."""
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    return _urlsafe_b64(digest)


@dataclass(frozen=True)
class SessionContext:
    """State of one authentication attempt.

    Created by IDXClient.interact() and owned by the flow response
    that started it.
    """

    interaction_handle: str
    code_verifier: str = field(repr=False)
    state: str

    @property
    def code_challenge(self) -> str:
        """S256 challenge derived from the verifier."""
        return generate_code_challenge(self.code_verifier)
