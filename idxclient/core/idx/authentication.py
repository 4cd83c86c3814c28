"""Username/password authentication over IDX.

The flow is driven in one call: interact, introspect, identify, answer
the password challenge and exchange the interaction code. Responses
the flow does not know how to continue are reported through the
status rather than raised.

The initial flow and a later change_password are recorded as separate
protocol logs sharing one flow id.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from idxclient.core.errors import StepUnavailableError
from idxclient.core.idx.document import (
    CHALLENGE_AUTHENTICATOR,
    IDENTIFY,
    REENROLL_AUTHENTICATOR,
    RemediationDocument,
    RemediationOption,
)

if TYPE_CHECKING:
    from idxclient.core.idx.client import IDXClient, Token
    from idxclient.core.idx.context import SessionContext

logger = logging.getLogger("idxclient.idx.authentication")


class AuthenticationStatus(StrEnum):
    """Outcome of an authentication attempt."""

    SUCCESS = "SUCCESS"
    PASSWORD_EXPIRED = "PASSWORD_EXPIRED"
    UNHANDLED = "UNHANDLED_RESPONSE"


@dataclass
class AuthenticationOptions:
    """Credentials submitted by authenticate()."""

    username: str
    password: str = field(repr=False)


class AuthenticationResponse:
    """Result of authenticate().

    An UNHANDLED status is not an error: the provider asked for something
    this flow does not drive, and the caller decides what to do with the
    document.
    """

    def __init__(self, client: IDXClient, session: SessionContext, flow_id: str | None = None) -> None:
        self._client = client
        self._session = session
        self._flow_id = flow_id or secrets.token_hex(8)
        self._document: RemediationDocument | None = None
        self._token: Token | None = None
        self._status = AuthenticationStatus.UNHANDLED

    @property
    def session(self) -> SessionContext:
        return self._session

    @property
    def flow_id(self) -> str:
        """Identifier of the protocol logs of this attempt."""
        return self._flow_id

    @property
    def document(self) -> RemediationDocument | None:
        """The last document received from the provider."""
        return self._document

    @property
    def status(self) -> AuthenticationStatus:
        return self._status

    @property
    def token(self) -> Token | None:
        """Tokens, present once the status is SUCCESS."""
        return self._token

    @property
    def is_authenticated(self) -> bool:
        return self._status == AuthenticationStatus.SUCCESS

    def change_password(self, new_password: str) -> AuthenticationResponse:
        """Replace an expired password and continue the flow.

        Raises:
            StepUnavailableError: If the password has not expired.
        """
        if self._status != AuthenticationStatus.PASSWORD_EXPIRED:
            raise StepUnavailableError("CHANGE_PASSWORD", [self._status])

        with self._client.protocol_logger.flow("idx_change_password", self._flow_id):
            document = self._client.introspect(self._session)
            option = document.remediation_option(REENROLL_AUTHENTICATOR)
            document = self._client.proceed(option, {"credentials": {"passcode": new_password.strip()}})
            self._handle_remediation(document)
        return self

    def _handle_remediation(self, document: RemediationDocument) -> None:
        self._document = document

        if document.is_login_success:
            self._token = self._client.exchange_code(document.success, self._session)  # type: ignore[arg-type]
            self._status = AuthenticationStatus.SUCCESS
        elif document.has_remediation_option(REENROLL_AUTHENTICATOR):
            self._status = AuthenticationStatus.PASSWORD_EXPIRED
        else:
            self._status = AuthenticationStatus.UNHANDLED
            logger.warning(f"Unhandled remediation response, options offered: {document.option_names}")


def _identify_then_challenge(
    client: IDXClient,
    options: AuthenticationOptions,
    identify: RemediationOption,
) -> RemediationDocument:
    document = client.proceed(identify, {"identifier": options.username})
    challenge = document.remediation_option(CHALLENGE_AUTHENTICATOR)
    return client.proceed(challenge, {"credentials": {"passcode": options.password}})


def _identify_with_credentials(
    client: IDXClient,
    options: AuthenticationOptions,
    identify: RemediationOption,
) -> RemediationDocument:
    payload = {
        "identifier": options.username,
        "credentials": {"passcode": options.password},
    }
    return client.proceed(identify, payload)


def authenticate(client: IDXClient, options: AuthenticationOptions) -> AuthenticationResponse:
    """Authenticate a user with username and password.

    Policies that ask for the identifier on its own get two submissions
    (identify, then challenge-authenticator); policies whose identify form
    already carries a 'credentials' field get a single one.

    Args:
        client: Client bound to the application.
        options: Username and password.

    Returns:
        AuthenticationResponse; check its status.
    """
    flow_id = secrets.token_hex(8)
    with client.protocol_logger.flow("idx_authenticate", flow_id):
        session = client.interact()
        response = AuthenticationResponse(client, session, flow_id)

        document = client.introspect(session)
        identify = document.remediation_option(IDENTIFY)
        if identify.is_identifier_first:
            logger.debug("Identify form is identifier-first")
            document = _identify_then_challenge(client, options, identify)
        else:
            logger.debug("Identify form accepts credentials")
            document = _identify_with_credentials(client, options, identify)

        response._handle_remediation(document)
        logger.info(f"Authentication finished with status {response.status}")
        return response
