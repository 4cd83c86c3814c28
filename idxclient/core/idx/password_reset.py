"""Password recovery over IDX.

The flow has no fixed order. After every transition the set of legal
next steps is recomputed from the document the provider returned, and
the caller picks one of them::

    response = client.init_password_reset(IdentifyRequest("jane@example.com"))
    if response.has_step(ResetPasswordStep.EMAIL_VERIFICATION):
        response.verify_email()
        response.confirm_email(code_from_inbox)
    if response.has_step(ResetPasswordStep.ANSWER_SECURITY_QUESTION):
        response.answer_security_question(answer)
    response.set_new_password(new_password)
    token = response.token

Every transition is recorded as its own protocol log. The logs of one
recovery share a flow id and are named after the transition, e.g.
"idx_password_reset.verify_email".

A response object is not safe for concurrent use: transitions update
its step set and cached security question in place.
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Iterable
from contextlib import AbstractContextManager
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from idxclient.core.errors import (
    DeadEndError,
    EnrollmentNotFoundError,
    ProtocolShapeError,
    RemediationNotFoundError,
    StepUnavailableError,
)
from idxclient.core.idx.document import (
    CHALLENGE_AUTHENTICATOR,
    IDENTIFY,
    RESET_AUTHENTICATOR,
    SELECT_AUTHENTICATOR_AUTHENTICATE,
    SKIP,
    RemediationDocument,
)

if TYPE_CHECKING:
    from idxclient.core.idx.client import IDXClient, Token
    from idxclient.core.idx.context import SessionContext
    from idxclient.core.logging import ProtocolLog

logger = logging.getLogger("idxclient.idx.password_reset")

EMAIL_AUTHENTICATOR_LABEL = "Email"
NEW_PASSWORD_LABEL = "New password"


class ResetPasswordStep(StrEnum):
    """Methods of ResetPasswordResponse that may be called next."""

    EMAIL_VERIFICATION = "EMAIL_VERIFICATION"  # verify_email
    EMAIL_CONFIRMATION = "EMAIL_CONFIRMATION"  # confirm_email
    ANSWER_SECURITY_QUESTION = "ANSWER_SECURITY_QUESTION"  # answer_security_question
    NEW_PASSWORD = "NEW_PASSWORD"  # set_new_password
    CANCEL = "CANCEL"  # cancel
    SKIP = "SKIP"  # skip
    SUCCESS = "SUCCESS"  # token


@dataclass(frozen=True)
class SecurityQuestion:
    """A security question the provider asks during recovery."""

    question_key: str
    question: str


@dataclass
class IdentifyRequest:
    """Identifies the user whose password is being recovered."""

    identifier: str
    remember_me: bool = False

    def to_payload(self) -> dict[str, Any]:
        return {"identifier": self.identifier, "remember_me": self.remember_me}


def find_security_question(document: RemediationDocument) -> SecurityQuestion | None:
    """Extract the security question offered by a challenge, if any."""
    option = document.remediation.get(CHALLENGE_AUTHENTICATOR)
    if option is None:
        return None
    for form_field in option.nested_fields():
        if form_field.name == "questionKey":
            return SecurityQuestion(
                question_key=str(form_field.value or ""),
                question=form_field.label or "",
            )
    return None


def offers_new_password(document: RemediationDocument) -> bool:
    """Whether the document accepts a new password."""
    option = document.remediation.get(RESET_AUTHENTICATOR)
    if option is None:
        return False
    return any(f.label == NEW_PASSWORD_LABEL for f in option.nested_fields())


def _recover(client: IDXClient, document: RemediationDocument) -> RemediationDocument:
    """Follow the recover link of the current authenticator enrollment."""
    enrollment = document.current_authenticator_enrollment
    if enrollment is None:
        raise EnrollmentNotFoundError(document.messages)
    if enrollment.recover is None:
        raise RemediationNotFoundError("recover", document.option_names)
    return client.proceed(enrollment.recover)


class ResetPasswordResponse:
    """State of a password recovery flow."""

    def __init__(self, client: IDXClient, session: SessionContext, flow_id: str | None = None) -> None:
        self._client = client
        self._session = session
        self._flow_id = flow_id or secrets.token_hex(8)
        self._document: RemediationDocument | None = None
        self._available_steps: list[ResetPasswordStep] = []
        self._security_question: SecurityQuestion | None = None
        self._token: Token | None = None

    @property
    def session(self) -> SessionContext:
        return self._session

    @property
    def flow_id(self) -> str:
        """Identifier of the protocol logs of this recovery."""
        return self._flow_id

    @property
    def document(self) -> RemediationDocument | None:
        """The last document received from the provider."""
        return self._document

    @property
    def available_steps(self) -> list[ResetPasswordStep]:
        """Steps that can be executed next.

        After a successful recovery this contains only SUCCESS.
        """
        return list(self._available_steps)

    @property
    def security_question(self) -> SecurityQuestion | None:
        """The question to answer while ANSWER_SECURITY_QUESTION is available."""
        return self._security_question

    @property
    def token(self) -> Token | None:
        """Tokens, present once SUCCESS is the available step."""
        return self._token

    @property
    def is_authenticated(self) -> bool:
        return self.has_step(ResetPasswordStep.SUCCESS)

    def has_step(self, step: ResetPasswordStep) -> bool:
        return step in self._available_steps

    def _require(self, step: ResetPasswordStep) -> None:
        if not self.has_step(step):
            raise StepUnavailableError(step, self._available_steps)

    def _flow(self, transition: str) -> AbstractContextManager[ProtocolLog]:
        return self._client.protocol_logger.flow(f"idx_password_reset.{transition}", self._flow_id)

    def _setup_next_steps(
        self,
        document: RemediationDocument,
        asserted: Iterable[ResetPasswordStep] = (),
    ) -> None:
        """Recompute the legal steps from a document.

        The document, steps and question are replaced together, so on
        error the response keeps describing the previous document.

        Args:
            document: The document returned by the last transition.
            asserted: Steps the calling transition knows to be pending but
                that the document does not reveal on its own.

        Raises:
            DeadEndError: If the document leaves nothing to do.
            IDXError: If the interaction code cannot be exchanged.
        """
        if document.is_login_success:
            token = self._client.exchange_code(document.success, self._session)  # type: ignore[arg-type]
            self._document = document
            self._token = token
            self._available_steps = [ResetPasswordStep.SUCCESS]
            self._security_question = None
            logger.info("Password recovery completed")
            return

        steps: list[ResetPasswordStep] = []
        if document.is_cancelled:
            steps.append(ResetPasswordStep.CANCEL)
        if document.find_authenticator_id(SELECT_AUTHENTICATOR_AUTHENTICATE, EMAIL_AUTHENTICATOR_LABEL):
            steps.append(ResetPasswordStep.EMAIL_VERIFICATION)
        if document.has_remediation_option(SKIP):
            steps.append(ResetPasswordStep.SKIP)
        question = find_security_question(document)
        if question is not None:
            steps.append(ResetPasswordStep.ANSWER_SECURITY_QUESTION)
        if offers_new_password(document):
            steps.append(ResetPasswordStep.NEW_PASSWORD)
        steps.extend(s for s in asserted if s not in steps)

        if not steps:
            raise DeadEndError(document.messages)

        self._document = document
        self._available_steps = steps
        self._security_question = question
        logger.debug(f"Available password recovery steps: {[str(s) for s in steps]}")

    def verify_email(self) -> ResetPasswordResponse:
        """Ask the provider to send a verification code by email.

        The provider does not reveal that a code is pending, so
        EMAIL_CONFIRMATION is added to the steps by this transition.
        """
        self._require(ResetPasswordStep.EMAIL_VERIFICATION)
        with self._flow("verify_email"):
            document = _recover(self._client, self._client.introspect(self._session))
            option, authenticator_id = document.authenticator_option(
                SELECT_AUTHENTICATOR_AUTHENTICATE, EMAIL_AUTHENTICATOR_LABEL
            )
            document = self._client.proceed(option, {"authenticator": {"id": authenticator_id}})
            self._setup_next_steps(document, asserted=[ResetPasswordStep.EMAIL_CONFIRMATION])
        return self

    def confirm_email(self, code: str) -> ResetPasswordResponse:
        """Submit the code received by email."""
        self._require(ResetPasswordStep.EMAIL_CONFIRMATION)
        with self._flow("confirm_email"):
            document = self._client.introspect(self._session)
            option = document.remediation_option(CHALLENGE_AUTHENTICATOR)
            document = self._client.proceed(option, {"credentials": {"passcode": code.strip()}})
            self._setup_next_steps(document)
        return self

    def answer_security_question(self, answer: str) -> ResetPasswordResponse:
        """Answer the current security question.

        The cached question is cleared afterwards whether or not the
        answer was accepted.
        """
        self._require(ResetPasswordStep.ANSWER_SECURITY_QUESTION)
        try:
            with self._flow("answer_security_question"):
                document = self._client.introspect(self._session)
                option = document.remediation_option(CHALLENGE_AUTHENTICATOR)
                question = self._security_question or find_security_question(document)
                if question is None:
                    raise ProtocolShapeError("challenge-authenticator does not carry a security question")
                payload = {"credentials": {"questionKey": question.question_key, "answer": answer}}
                document = self._client.proceed(option, payload)
                self._setup_next_steps(document)
        finally:
            self._security_question = None
        return self

    def set_new_password(self, password: str) -> ResetPasswordResponse:
        """Set the new password of the account."""
        self._require(ResetPasswordStep.NEW_PASSWORD)
        with self._flow("set_new_password"):
            document = self._client.introspect(self._session)
            option = document.remediation_option(RESET_AUTHENTICATOR)
            document = self._client.proceed(option, {"credentials": {"passcode": password.strip()}})
            self._setup_next_steps(document)
        return self

    def skip(self) -> ResetPasswordResponse:
        """Skip the optional remediation currently offered."""
        self._require(ResetPasswordStep.SKIP)
        with self._flow("skip"):
            document = self._client.introspect(self._session)
            document = self._client.proceed(document.remediation_option(SKIP))
            self._setup_next_steps(document)
        return self

    def cancel(self) -> ResetPasswordResponse:
        """Cancel the whole password recovery."""
        self._require(ResetPasswordStep.CANCEL)
        with self._flow("cancel"):
            document = self._client.cancel(self._client.introspect(self._session))
            self._setup_next_steps(document)
        return self


def init_password_reset(client: IDXClient, request: IdentifyRequest) -> ResetPasswordResponse:
    """Start password recovery for a user.

    Identifies the user, follows the recover link of their password
    enrollment and computes the first steps.

    Raises:
        EnrollmentNotFoundError: If the provider reports no enrollment for the user.
        RemediationNotFoundError: If the enrollment cannot be recovered.
        DeadEndError: If the recovery document leaves nothing to do.
    """
    flow_id = secrets.token_hex(8)
    with client.protocol_logger.flow("idx_password_reset", flow_id):
        session = client.interact()
        document = client.introspect(session)
        identify = document.remediation_option(IDENTIFY)
        document = client.proceed(identify, request.to_payload())
        document = _recover(client, document)

        response = ResetPasswordResponse(client, session, flow_id)
        response._setup_next_steps(document)
        return response
