"""IDX client implementation.

Talks to the interaction code endpoints of an Okta Identity Engine org:
interact, introspect, remediation submissions and the token exchange
that completes a flow.
"""

from __future__ import annotations

import json
import logging
import platform
from dataclasses import dataclass, field
from typing import Any

import httpx

from idxclient import __version__
from idxclient.core.config import IDXConfig
from idxclient.core.errors import IDXProviderError, IDXTransportError, ProtocolShapeError
from idxclient.core.idx.authentication import (
    AuthenticationOptions,
    AuthenticationResponse,
    authenticate,
)
from idxclient.core.idx.context import (
    CODE_CHALLENGE_METHOD,
    SessionContext,
    generate_code_challenge,
    generate_code_verifier,
    generate_state,
)
from idxclient.core.idx.document import (
    ION_MEDIA_TYPE,
    RemediationDocument,
    RemediationOption,
    SuccessMarker,
)
from idxclient.core.idx.password_reset import (
    IdentifyRequest,
    ResetPasswordResponse,
    init_password_reset,
)
from idxclient.core.logging import LoggingClient, ProtocolLogger, get_protocol_logger

logger = logging.getLogger("idxclient.idx")

FORM_MEDIA_TYPE = "application/x-www-form-urlencoded"
JSON_MEDIA_TYPE = "application/json"

USER_AGENT = f"idxclient/{__version__} python/{platform.python_version()} {platform.system()}/{platform.release()}"


@dataclass
class Token:
    """Tokens issued in exchange for an interaction code."""

    access_token: str = field(repr=False)
    token_type: str = "Bearer"
    expires_in: int | None = None
    scope: str | None = None
    refresh_token: str | None = field(default=None, repr=False)
    id_token: str | None = field(default=None, repr=False)

    # Raw response for debugging
    raw_response: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Token:
        if not data.get("access_token"):
            raise ProtocolShapeError("token response does not contain an access_token")
        return cls(
            access_token=data["access_token"],
            token_type=data.get("token_type", "Bearer"),
            expires_in=data.get("expires_in"),
            scope=data.get("scope"),
            refresh_token=data.get("refresh_token"),
            id_token=data.get("id_token"),
            raw_response=data,
        )


class IDXClient:
    """Client for the IDX interaction code flow.

    Each flow response created by this client keeps a reference to it;
    there is no process-wide default client.
    """

    def __init__(
        self,
        config: IDXConfig,
        protocol_logger: ProtocolLogger | None = None,
        http_client: httpx.Client | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the IDX client.

        Args:
            config: Client configuration; validated here.
            protocol_logger: Optional protocol logger for HTTP traffic capture.
            http_client: Pre-built HTTP client to use instead of the logging client.
            transport: Optional httpx transport for the logging client (tests, proxies).

        Raises:
            ConfigError: If the configuration is incomplete.
        """
        config.validate()
        self.config = config
        self._protocol_logger = protocol_logger or get_protocol_logger()
        self._transport = transport
        self._http_client = http_client

    @property
    def http_client(self) -> httpx.Client:
        """Get or create HTTP client with logging."""
        if self._http_client is None:
            self._http_client = LoggingClient(
                protocol_logger=self._protocol_logger,
                timeout=self.config.timeout,
                transport=self._transport,
            )
        return self._http_client

    @property
    def protocol_logger(self) -> ProtocolLogger:
        """Get the protocol logger."""
        return self._protocol_logger

    @property
    def client_secret(self) -> str:
        return self.config.client_secret

    def close(self) -> None:
        """Close the HTTP client."""
        if self._http_client is not None:
            self._http_client.close()
            self._http_client = None

    def __enter__(self) -> IDXClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _request(
        self,
        method: str,
        url: str,
        *,
        json_body: dict[str, Any] | None = None,
        form: dict[str, str] | None = None,
        content_type: str = ION_MEDIA_TYPE,
        accept: str = ION_MEDIA_TYPE,
    ) -> dict[str, Any]:
        """Send one request and decode the JSON object it returns.

        Raises:
            IDXTransportError: On network failures or undecodable bodies.
            IDXProviderError: On non-2xx responses.
        """
        headers = {"Accept": accept, "User-Agent": USER_AGENT}
        kwargs: dict[str, Any] = {}
        if form is not None:
            headers["Content-Type"] = FORM_MEDIA_TYPE
            kwargs["data"] = form
        elif json_body is not None:
            try:
                kwargs["content"] = json.dumps(json_body).encode("utf-8")
            except (TypeError, ValueError) as e:
                raise IDXTransportError(f"failed to encode request body for {url}: {e}") from e
            headers["Content-Type"] = content_type

        try:
            response = self.http_client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            raise IDXTransportError(f"http call to {url} has failed: {e}") from e

        if not response.is_success:
            error = IDXProviderError.from_response(response)
            logger.warning(f"{method} {url} rejected: {error}")
            raise error

        try:
            body = response.json()
        except ValueError as e:
            raise IDXTransportError(f"failed to decode response body from {url}: {e}") from e
        if not isinstance(body, dict):
            raise IDXTransportError(f"expected a JSON object from {url}, got {type(body).__name__}")
        return body

    def interact(self) -> SessionContext:
        """Start a new interaction.

        Generates a fresh PKCE verifier and state and exchanges them for
        an interaction handle.

        Returns:
            SessionContext for the new attempt.
        """
        code_verifier = generate_code_verifier()
        state = generate_state()

        data = {
            "client_id": self.config.client_id,
            "scope": " ".join(self.config.scopes),
            "code_challenge": generate_code_challenge(code_verifier),
            "code_challenge_method": CODE_CHALLENGE_METHOD,
            "redirect_uri": self.config.redirect_uri,
            "state": state,
        }
        body = self._request("POST", self.config.interact_endpoint, form=data, accept=JSON_MEDIA_TYPE)

        handle = body.get("interaction_handle")
        if not handle:
            raise ProtocolShapeError("interact response does not contain an interaction_handle")

        logger.info("Interaction started")
        return SessionContext(interaction_handle=handle, code_verifier=code_verifier, state=state)

    def introspect(self, session: SessionContext | None = None) -> RemediationDocument:
        """Fetch the current remediation document of an interaction.

        Args:
            session: Session to introspect. A new interaction is started
                when omitted, so pass it explicitly to stay on one session.

        Returns:
            The parsed remediation document.
        """
        if session is None:
            logger.debug("No session given to introspect, starting a new interaction")
            session = self.interact()

        body = self._request(
            "POST",
            self.config.introspect_endpoint,
            json_body={"interactionHandle": session.interaction_handle},
        )
        document = RemediationDocument.from_dict(body)
        logger.debug(f"Introspected remediation options: {document.option_names}")
        return document

    def proceed(
        self,
        option: RemediationOption,
        payload: dict[str, Any] | None = None,
    ) -> RemediationDocument:
        """Submit a payload to a remediation option.

        Server-supplied form values missing from the payload (such as
        'stateHandle') are added before sending.

        Args:
            option: The remediation option to submit to.
            payload: Fields to submit; None submits only the defaults.

        Returns:
            The document describing the next state.
        """
        body = {**option.default_values(), **(payload or {})}
        logger.info(f"Submitting remediation '{option.name}'")
        response = self._request(
            option.method,
            option.href,
            json_body=body,
            content_type=option.accepts,
            accept=option.accepts,
        )
        return RemediationDocument.from_dict(response)

    def cancel(self, document: RemediationDocument) -> RemediationDocument:
        """Invoke the cancel transition of a document.

        Raises:
            ProtocolShapeError: If the document offers no cancel transition.
        """
        if document.cancel is None:
            raise ProtocolShapeError("response does not offer a cancel transition")
        return self.proceed(document.cancel)

    def exchange_code(self, success: SuccessMarker, session: SessionContext) -> Token:
        """Exchange the interaction code of a successful flow for tokens.

        Args:
            success: The success marker of the final document.
            session: Session whose PKCE verifier started the interaction.

        Returns:
            The issued tokens.
        """
        form = {name: str(value) for name, value in success.default_values().items()}
        form["client_secret"] = self.config.client_secret
        form["code_verifier"] = session.code_verifier

        body = self._request("POST", success.token_endpoint, form=form, accept=JSON_MEDIA_TYPE)
        logger.info("Interaction code exchanged for tokens")
        return Token.from_dict(body)

    def authenticate(self, options: AuthenticationOptions) -> AuthenticationResponse:
        """Authenticate a user with username and password.

        See idxclient.core.idx.authentication.authenticate.
        """
        return authenticate(self, options)

    def init_password_reset(self, request: IdentifyRequest) -> ResetPasswordResponse:
        """Start the password recovery flow for a user.

        See idxclient.core.idx.password_reset.init_password_reset.
        """
        return init_password_reset(self, request)
