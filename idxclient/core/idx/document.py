"""Remediation document model.

Typed representation of the self-describing documents returned by the
introspect and remediation endpoints, plus the lookups flows use to
navigate them.

A document looks like::

    {
        "stateHandle": "02...",
        "remediation": {"type": "array", "value": [
            {"name": "identify", "href": ".../idp/idx/identify", "method": "POST",
             "accepts": "application/json; okta-version=1.0.0",
             "value": [{"name": "identifier", "label": "Username"},
                       {"name": "stateHandle", "value": "02...", "visible": false}]}
        ]},
        "cancel": {"name": "cancel", "href": ".../idp/idx/cancel", "value": [...]},
        "messages": {"type": "array", "value": [{"message": "...", "class": "ERROR"}]}
    }
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

from idxclient.core.errors import (
    AuthenticatorNotFoundError,
    ProtocolShapeError,
    RemediationNotFoundError,
)

ION_MEDIA_TYPE = "application/ion+json; okta-version=1.0.0"

# Remediation option names used by the flows
IDENTIFY = "identify"
CHALLENGE_AUTHENTICATOR = "challenge-authenticator"
SELECT_AUTHENTICATOR_AUTHENTICATE = "select-authenticator-authenticate"
RESET_AUTHENTICATOR = "reset-authenticator"
REENROLL_AUTHENTICATOR = "reenroll-authenticator"
SKIP = "skip"


def _ion_value(data: Any) -> Any:
    """Unwrap an ion collection ({"type": "array", "value": [...]})."""
    if isinstance(data, dict) and data.get("type") in ("array", "object") and "value" in data:
        return data["value"]
    return data


@dataclass
class Message:
    """A user-facing message attached to a document."""

    message: str
    severity: str = "INFO"
    i18n_key: str | None = None

    def __str__(self) -> str:
        return self.message


def parse_messages(data: Any) -> list[Message]:
    """Parse the 'messages' collection of a document or error body."""
    values = _ion_value(data)
    if not isinstance(values, list):
        return []

    messages = []
    for item in values:
        if not isinstance(item, dict):
            continue
        i18n = item.get("i18n") or {}
        messages.append(
            Message(
                message=item.get("message", ""),
                severity=item.get("class", "INFO"),
                i18n_key=i18n.get("key"),
            )
        )
    return messages


@dataclass
class NestedForm:
    """Form embedded in a field, e.g. the 'credentials' object."""

    fields: list[FormField] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> NestedForm:
        values = _ion_value(data.get("value", [])) if isinstance(data, dict) else data
        return cls(fields=[FormField.from_dict(v) for v in values or [] if isinstance(v, dict)])

    def field(self, name: str) -> FormField | None:
        """Return the field with the given name, if any."""
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def field_by_label(self, label: str) -> FormField | None:
        """Return the first field with the given label, if any."""
        for f in self.fields:
            if f.label == label:
                return f
        return None


@dataclass
class FieldOption:
    """One choice of a selection field.

    Authenticator choices carry a nested form holding the authenticator
    'id' and 'methodType'.
    """

    label: str
    value: Any = None
    form: NestedForm | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FieldOption:
        value = data.get("value")
        form = None
        if isinstance(value, dict) and "form" in value:
            form = NestedForm.from_dict(value["form"])
            value = None
        return cls(label=data.get("label", ""), value=value, form=form)


@dataclass
class FormField:
    """A single field of a remediation form.

    Plain fields carry a 'value'. Object fields carry a nested 'form';
    selection fields carry 'options'.
    """

    name: str
    label: str | None = None
    type: str | None = None
    value: Any = None
    required: bool = False
    secret: bool = False
    visible: bool = True
    mutable: bool = True
    form: NestedForm | None = None
    options: list[FieldOption] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FormField:
        value = data.get("value")
        form = None
        if "form" in data:
            form = NestedForm.from_dict(data["form"])
        elif isinstance(value, dict) and "form" in value:
            form = NestedForm.from_dict(value["form"])
            value = None

        return cls(
            name=data.get("name", ""),
            label=data.get("label"),
            type=data.get("type"),
            value=value,
            required=bool(data.get("required", False)),
            secret=bool(data.get("secret", False)),
            visible=bool(data.get("visible", True)),
            mutable=bool(data.get("mutable", True)),
            form=form,
            options=[FieldOption.from_dict(o) for o in data.get("options") or [] if isinstance(o, dict)],
        )

    @property
    def is_nested(self) -> bool:
        """Whether this field wraps a nested form."""
        return self.form is not None and bool(self.form.fields)


@dataclass
class RemediationOption:
    """A named, submittable operation of a remediation document."""

    name: str
    href: str
    method: str = "POST"
    accepts: str = ION_MEDIA_TYPE
    form: list[FormField] = field(default_factory=list)
    rel: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RemediationOption:
        if not isinstance(data, dict):
            raise ProtocolShapeError(f"remediation option must be an object, got {type(data).__name__}")
        name = data.get("name")
        href = data.get("href")
        if not name or not href:
            raise ProtocolShapeError(f"remediation option is missing 'name' or 'href': {data!r:.200}")

        values = _ion_value(data.get("value", []))
        return cls(
            name=name,
            href=href,
            method=data.get("method", "POST").upper(),
            accepts=data.get("accepts", ION_MEDIA_TYPE),
            form=[FormField.from_dict(v) for v in values or [] if isinstance(v, dict)],
            rel=list(data.get("rel", [])),
        )

    def field(self, name: str) -> FormField | None:
        """Return the top-level field with the given name, if any."""
        for f in self.form:
            if f.name == name:
                return f
        return None

    def nested_fields(self) -> Iterator[FormField]:
        """Iterate over the fields of every nested form, in document order."""
        for f in self.form:
            if f.is_nested:
                yield from f.form.fields  # type: ignore[union-attr]

    def default_values(self) -> dict[str, Any]:
        """Server-supplied scalar values, such as 'stateHandle'.

        These are carried into every submission that does not set them.
        """
        return {
            f.name: f.value
            for f in self.form
            if f.value is not None and f.form is None and not f.options
        }

    @property
    def is_identifier_first(self) -> bool:
        """Whether the identify form asks for the identifier on its own.

        When the provider expects the password alongside the identifier,
        the form carries a 'credentials' field.
        """
        return self.field("credentials") is None


@dataclass
class SuccessMarker(RemediationOption):
    """The 'successWithInteractionCode' object of a completed flow.

    Its href is the token endpoint; its form carries grant_type,
    interaction_code and client_id.
    """

    @property
    def token_endpoint(self) -> str:
        return self.href


@dataclass
class CancelMarker(RemediationOption):
    """The 'cancel' object, targeted by the cancel transition."""


@dataclass
class CurrentAuthenticatorEnrollment:
    """The authenticator the user is currently working with."""

    id: str | None = None
    type: str | None = None
    display_name: str | None = None
    recover: RemediationOption | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CurrentAuthenticatorEnrollment:
        value = _ion_value(data)
        if not isinstance(value, dict):
            raise ProtocolShapeError("'currentAuthenticatorEnrollment' must be an object")
        recover = value.get("recover")
        return cls(
            id=value.get("id"),
            type=value.get("type"),
            display_name=value.get("displayName"),
            recover=RemediationOption.from_dict(recover) if recover else None,
        )


@dataclass
class RemediationDocument:
    """A parsed introspect/remediation response."""

    remediation: dict[str, RemediationOption] = field(default_factory=dict)
    success: SuccessMarker | None = None
    cancel: CancelMarker | None = None
    messages: list[Message] = field(default_factory=list)
    current_authenticator_enrollment: CurrentAuthenticatorEnrollment | None = None
    state_handle: str | None = None
    intent: str | None = None
    expires_at: str | None = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RemediationDocument:
        """Parse a decoded JSON document.

        Raises:
            ProtocolShapeError: If the document is malformed or repeats an option name.
        """
        if not isinstance(data, dict):
            raise ProtocolShapeError(f"remediation document must be an object, got {type(data).__name__}")

        remediation: dict[str, RemediationOption] = {}
        for item in _ion_value(data.get("remediation", [])) or []:
            option = RemediationOption.from_dict(item)
            if option.name in remediation:
                raise ProtocolShapeError(f"duplicate remediation option '{option.name}' in response")
            remediation[option.name] = option

        success = data.get("successWithInteractionCode")
        cancel = data.get("cancel")
        enrollment = data.get("currentAuthenticatorEnrollment")

        return cls(
            remediation=remediation,
            success=SuccessMarker.from_dict(success) if success else None,
            cancel=CancelMarker.from_dict(cancel) if cancel else None,
            messages=parse_messages(data.get("messages")),
            current_authenticator_enrollment=(
                CurrentAuthenticatorEnrollment.from_dict(enrollment) if enrollment else None
            ),
            state_handle=data.get("stateHandle"),
            intent=data.get("intent"),
            expires_at=data.get("expiresAt"),
            raw=data,
        )

    @property
    def option_names(self) -> list[str]:
        """Names of the remediation options, in document order."""
        return list(self.remediation)

    def has_remediation_option(self, name: str) -> bool:
        return name in self.remediation

    def remediation_option(self, name: str) -> RemediationOption:
        """Return the named remediation option.

        Raises:
            RemediationNotFoundError: If the provider does not currently offer it.
        """
        try:
            return self.remediation[name]
        except KeyError:
            raise RemediationNotFoundError(name, self.option_names) from None

    def find_authenticator_id(self, option_name: str, label: str) -> str | None:
        """Return the id of the authenticator labelled `label`, or None if not offered."""
        option = self.remediation.get(option_name)
        if option is None:
            return None
        for form_field in option.form:
            for choice in form_field.options:
                if choice.label != label:
                    continue
                id_field = choice.form.field("id") if choice.form else None
                if id_field is not None and id_field.value:
                    return str(id_field.value)
                if isinstance(choice.value, str) and choice.value:
                    return choice.value
        return None

    def authenticator_option(self, option_name: str, label: str) -> tuple[RemediationOption, str]:
        """Find an authenticator choice by label within a selection option.

        Args:
            option_name: Remediation option to search, e.g. "select-authenticator-authenticate".
            label: Authenticator label, e.g. "Email".

        Returns:
            The remediation option and the matched authenticator's id.

        Raises:
            RemediationNotFoundError: If the option is absent.
            AuthenticatorNotFoundError: If no authenticator with that label is offered.
        """
        option = self.remediation_option(option_name)
        authenticator_id = self.find_authenticator_id(option_name, label)
        if authenticator_id is None:
            raise AuthenticatorNotFoundError(option_name, label)
        return option, authenticator_id

    @property
    def is_login_success(self) -> bool:
        """Whether the flow has completed and the interaction code can be exchanged."""
        return self.success is not None

    @property
    def is_cancelled(self) -> bool:
        """Whether the document carries the cancel marker."""
        return self.cancel is not None
