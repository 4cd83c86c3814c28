"""Exception types raised while driving IDX flows."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    import httpx

    from idxclient.core.idx.document import Message


class IDXError(Exception):
    """Base exception for IDX client errors."""


class ConfigError(IDXError):
    """Raised when client configuration is missing or invalid."""


class StepUnavailableError(IDXError):
    """Raised when a transition is invoked that is not currently legal.

    Detected locally; no request is made.
    """

    def __init__(self, step: Any, available: Iterable[Any]) -> None:
        self.step = step
        self.available = list(available)
        names = ", ".join(str(s) for s in self.available) or "none"
        super().__init__(f"step {step} is not available, please try one of: {names}")


class ProtocolShapeError(IDXError):
    """The remediation document does not have the shape the flow expects."""


class RemediationNotFoundError(ProtocolShapeError):
    """Raised when a named remediation option is missing from the document."""

    def __init__(self, name: str, available: Iterable[str] = ()) -> None:
        self.name = name
        self.available = list(available)
        names = ", ".join(self.available) or "none"
        super().__init__(f"remediation option '{name}' not found in response (available: {names})")


class AuthenticatorNotFoundError(ProtocolShapeError):
    """Raised when a remediation option offers no authenticator with the given label."""

    def __init__(self, option_name: str, label: str) -> None:
        self.option_name = option_name
        self.label = label
        super().__init__(f"authenticator '{label}' not offered by remediation option '{option_name}'")


class EnrollmentNotFoundError(ProtocolShapeError):
    """Raised when 'currentAuthenticatorEnrollment' is absent from the document."""

    def __init__(self, messages: Sequence[Message] = ()) -> None:
        self.messages = list(messages)
        text = "'currentAuthenticatorEnrollment' field is missing from the response"
        if self.messages:
            text += f": {_join_messages(self.messages)}"
        super().__init__(text)


class DeadEndError(IDXError):
    """The provider returned a document with no actionable remediation."""

    def __init__(self, messages: Sequence[Message] = ()) -> None:
        self.messages = list(messages)
        text = "there are no more steps available"
        if self.messages:
            text += f": {_join_messages(self.messages)}"
        super().__init__(text)


class IDXTransportError(IDXError):
    """Network or encoding failure while talking to the provider."""


class IDXProviderError(IDXError):
    """Non-2xx response from the provider, decoded into its structured form."""

    def __init__(
        self,
        status_code: int,
        error_code: str | None = None,
        error_summary: str | None = None,
        error_description: str | None = None,
        messages: Sequence[Message] = (),
        raw_response: dict[str, Any] | None = None,
    ) -> None:
        self.status_code = status_code
        self.error_code = error_code
        self.error_summary = error_summary
        self.error_description = error_description
        self.messages = list(messages)
        self.raw_response = raw_response or {}
        super().__init__(self._describe())

    def _describe(self) -> str:
        parts = [f"provider returned HTTP {self.status_code}"]
        if self.error_code:
            parts.append(self.error_code)
        if self.error_summary:
            parts.append(self.error_summary)
        if self.error_description:
            parts.append(self.error_description)
        if self.messages:
            parts.append(_join_messages(self.messages))
        return ": ".join(parts)

    @classmethod
    def from_response(cls, response: httpx.Response) -> IDXProviderError:
        """Build the error from a non-2xx response.

        Understands the management API shape (errorCode/errorSummary), the
        OAuth shape (error/error_description) and IDX documents carrying a
        message list.
        """
        from idxclient.core.idx.document import parse_messages

        try:
            body = response.json()
        except ValueError:
            return cls(response.status_code, error_description=response.text[:500] or None)
        if not isinstance(body, dict):
            return cls(response.status_code, raw_response={"body": body})

        return cls(
            status_code=response.status_code,
            error_code=body.get("errorCode") or body.get("error"),
            error_summary=body.get("errorSummary"),
            error_description=body.get("error_description"),
            messages=parse_messages(body.get("messages")),
            raw_response=body,
        )


def _join_messages(messages: Sequence[Message]) -> str:
    return "; ".join(m.message for m in messages)
