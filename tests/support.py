"""Fake identity provider and document builders for IDX tests."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any
from urllib.parse import parse_qs

import httpx

ORG = "https://idp.example.com"
ISSUER = f"{ORG}/oauth2/default"

INTERACT_PATH = "/oauth2/default/v1/interact"
INTROSPECT_PATH = "/idp/idx/introspect"
IDENTIFY_PATH = "/idp/idx/identify"
CHALLENGE_PATH = "/idp/idx/challenge/answer"
SELECT_PATH = "/idp/idx/challenge"
RECOVER_PATH = "/idp/idx/recover"
RESET_PATH = "/idp/idx/challenge/answer/reset"
REENROLL_PATH = "/idp/idx/challenge/answer/reenroll"
SKIP_PATH = "/idp/idx/skip"
CANCEL_PATH = "/idp/idx/cancel"
TOKEN_PATH = "/oauth2/default/v1/token"

STATE_HANDLE = "02state-handle"
ION = "application/ion+json; okta-version=1.0.0"


class FakeIdP:
    """Routes requests by path to queued responses and records them.

    The last response queued for a path is repeated for later requests.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self._routes: dict[str, list[Callable[[httpx.Request], httpx.Response]]] = {}

    def add(self, path: str, body: Any = None, status_code: int = 200) -> FakeIdP:
        def respond(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status_code, json=body)

        self._routes.setdefault(path, []).append(respond)
        return self

    def add_error(self, path: str, error: Exception) -> FakeIdP:
        def raise_error(request: httpx.Request) -> httpx.Response:
            raise error

        self._routes.setdefault(path, []).append(raise_error)
        return self

    def clear(self, path: str) -> FakeIdP:
        """Drop the responses queued for a path."""
        self._routes.pop(path, None)
        return self

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self._routes.get(request.url.path)
        if not queue:
            return httpx.Response(404, json={"errorCode": "E0000007", "errorSummary": "Not found"})
        respond = queue.pop(0) if len(queue) > 1 else queue[0]
        return respond(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def requests_to(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]


def json_body(request: httpx.Request) -> dict[str, Any]:
    return json.loads(request.content)


def form_body(request: httpx.Request) -> dict[str, str]:
    return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}


def state_handle_field() -> dict[str, Any]:
    return {"name": "stateHandle", "required": True, "value": STATE_HANDLE, "visible": False, "mutable": False}


def option(name: str, path: str, fields: list[dict[str, Any]] | None = None) -> dict[str, Any]:
    return {
        "rel": ["create-form"],
        "name": name,
        "href": f"{ORG}{path}",
        "method": "POST",
        "accepts": "application/json; okta-version=1.0.0",
        "value": [*(fields or []), state_handle_field()],
    }


def credentials_field(*fields: dict[str, Any]) -> dict[str, Any]:
    return {"name": "credentials", "type": "object", "required": True, "form": {"value": list(fields)}}


def identify_option(with_credentials: bool = False) -> dict[str, Any]:
    fields = [{"name": "identifier", "label": "Username"}, {"name": "rememberMe", "type": "boolean"}]
    if with_credentials:
        fields.append(credentials_field({"name": "passcode", "label": "Password", "secret": True}))
    return option("identify", IDENTIFY_PATH, fields)


def password_challenge_option() -> dict[str, Any]:
    return option(
        "challenge-authenticator",
        CHALLENGE_PATH,
        [credentials_field({"name": "passcode", "label": "Password", "secret": True})],
    )


def code_challenge_option() -> dict[str, Any]:
    return option(
        "challenge-authenticator",
        CHALLENGE_PATH,
        [credentials_field({"name": "passcode", "label": "Enter code"})],
    )


def security_question_option(key: str = "favorite_sports_player", question: str = "Who is your favorite sports player?") -> dict[str, Any]:
    return option(
        "challenge-authenticator",
        CHALLENGE_PATH,
        [
            credentials_field(
                {"name": "questionKey", "label": question, "required": True, "value": key, "mutable": False},
                {"name": "answer", "label": "Answer", "required": True},
            )
        ],
    )


def select_authenticator_option(*labels: str) -> dict[str, Any]:
    choices = [
        {
            "label": label,
            "value": {
                "form": {
                    "value": [
                        {"name": "id", "required": True, "value": f"aut-{label.lower()}", "mutable": False},
                        {"name": "methodType", "required": False, "value": label.lower(), "mutable": False},
                    ]
                }
            },
        }
        for label in labels
    ]
    return option(
        "select-authenticator-authenticate",
        SELECT_PATH,
        [{"name": "authenticator", "type": "object", "options": choices}],
    )


def reset_authenticator_option() -> dict[str, Any]:
    return option(
        "reset-authenticator",
        RESET_PATH,
        [credentials_field({"name": "passcode", "label": "New password", "secret": True})],
    )


def reenroll_authenticator_option() -> dict[str, Any]:
    return option(
        "reenroll-authenticator",
        REENROLL_PATH,
        [credentials_field({"name": "passcode", "label": "New password", "secret": True})],
    )


def skip_option() -> dict[str, Any]:
    return option("skip", SKIP_PATH)


def cancel_marker() -> dict[str, Any]:
    return option("cancel", CANCEL_PATH)


def success_marker() -> dict[str, Any]:
    return {
        "rel": ["create-form"],
        "name": "issue",
        "href": f"{ORG}{TOKEN_PATH}",
        "method": "POST",
        "accepts": "application/x-www-form-urlencoded",
        "value": [
            {"name": "grant_type", "required": True, "value": "interaction_code"},
            {"name": "interaction_code", "required": True, "value": "interaction-code-123"},
            {"name": "client_id", "required": True, "value": "test-client"},
            {"name": "client_secret", "required": True},
            {"name": "code_verifier", "required": True},
        ],
    }


def enrollment(with_recover: bool = True) -> dict[str, Any]:
    value: dict[str, Any] = {"id": "lae-password", "type": "password", "displayName": "Password"}
    if with_recover:
        value["recover"] = option("recover", RECOVER_PATH)
    return {"type": "object", "value": value}


def document(
    *options: dict[str, Any],
    cancel: bool = True,
    success: bool = False,
    messages: list[str] | None = None,
    current_enrollment: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build a remediation document."""
    doc: dict[str, Any] = {
        "version": "1.0.0",
        "stateHandle": STATE_HANDLE,
        "intent": "LOGIN",
        "expiresAt": "2030-01-01T00:00:00.000Z",
        "remediation": {"type": "array", "value": list(options)},
    }
    if cancel:
        doc["cancel"] = cancel_marker()
    if success:
        doc["successWithInteractionCode"] = success_marker()
    if messages:
        doc["messages"] = {
            "type": "array",
            "value": [{"message": m, "i18n": {"key": "errors.test"}, "class": "ERROR"} for m in messages],
        }
    if current_enrollment is not None:
        doc["currentAuthenticatorEnrollment"] = current_enrollment
    return doc


def token_body() -> dict[str, Any]:
    return {
        "token_type": "Bearer",
        "expires_in": 3600,
        "access_token": "access-token-value",
        "scope": "openid profile",
        "id_token": "id-token-value",
    }


def interact_body(handle: str = "interaction-handle-1") -> dict[str, Any]:
    return {"interaction_handle": handle}
