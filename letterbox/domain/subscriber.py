"""
Subscriber identity value objects.

SubscriberName and SubscriberEmail wrap raw strings that passed validation.
Both validate on construction, so holding an instance means holding a
valid value. ``parse`` is the public way to build one from untrusted input.

Validation order for names: empty -> too long -> invalid characters.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

import regex

MAX_NAME_GRAPHEMES = 256
FORBIDDEN_NAME_CHARACTERS = frozenset('/()"<>\\{}')

MAX_EMAIL_LENGTH = 254
MAX_EMAIL_LOCAL_PART_LENGTH = 64

# RFC 5322 simplified
EMAIL_REGEX = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@"
    r"[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)+$"
)

# Extended grapheme cluster
_GRAPHEME = regex.compile(r"\X")


class NameErrorKind(Enum):
    EMPTY = "empty"
    TOO_LONG = "too_long"
    INVALID_CHARACTERS = "invalid_characters"


class EmailErrorKind(Enum):
    EMPTY = "empty"
    INVALID = "invalid"


class SubscriberValidationError(ValueError):
    """A raw subscriber field failed validation."""

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.message = message
        super().__init__(message)


class NameValidationError(SubscriberValidationError):
    def __init__(self, kind: NameErrorKind) -> None:
        self.kind = kind
        super().__init__("name", _NAME_MESSAGES[kind])


class EmailValidationError(SubscriberValidationError):
    def __init__(self, kind: EmailErrorKind, reason: str | None = None) -> None:
        self.kind = kind
        self.reason = reason
        message = "Empty email" if kind is EmailErrorKind.EMPTY else f"Invalid email: {reason}"
        super().__init__("email", message)


_NAME_MESSAGES = {
    NameErrorKind.EMPTY: "A name must not be empty",
    NameErrorKind.TOO_LONG: f"A name must not be more than {MAX_NAME_GRAPHEMES} graphemes long",
    NameErrorKind.INVALID_CHARACTERS: (
        "A name must not contain any of the following characters: "
        + " ".join(f"'{c}'" for c in sorted(FORBIDDEN_NAME_CHARACTERS))
    ),
}


def grapheme_count(s: str) -> int:
    """Count user-perceived characters (extended grapheme clusters)."""
    return len(_GRAPHEME.findall(s))


@dataclass(frozen=True)
class SubscriberName:
    """
    Validated subscriber display name.

    Trimming is only used to detect blank input; the stored value keeps the
    original content and the length limit applies to the untrimmed string.
    """

    value: str

    def __post_init__(self) -> None:
        if not self.value.strip():
            raise NameValidationError(NameErrorKind.EMPTY)
        if grapheme_count(self.value) > MAX_NAME_GRAPHEMES:
            raise NameValidationError(NameErrorKind.TOO_LONG)
        if any(c in FORBIDDEN_NAME_CHARACTERS for c in self.value):
            raise NameValidationError(NameErrorKind.INVALID_CHARACTERS)

    @classmethod
    def parse(cls, raw: str) -> SubscriberName:
        return cls(raw)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class SubscriberEmail:
    """
    Validated email address.

    ``parse`` trims surrounding whitespace and lower-cases the domain; the
    local part keeps its case.
    """

    value: str

    def __post_init__(self) -> None:
        if not self.value:
            raise EmailValidationError(EmailErrorKind.EMPTY)
        if len(self.value) > MAX_EMAIL_LENGTH:
            raise EmailValidationError(EmailErrorKind.INVALID, "address is too long")
        if len(self.value.rpartition("@")[0]) > MAX_EMAIL_LOCAL_PART_LENGTH:
            raise EmailValidationError(EmailErrorKind.INVALID, "local part is too long")
        if not EMAIL_REGEX.match(self.value):
            raise EmailValidationError(EmailErrorKind.INVALID, self.value)

    @classmethod
    def parse(cls, raw: str) -> SubscriberEmail:
        local, at, domain = raw.strip().rpartition("@")
        if not at:
            return cls(domain)
        return cls(f"{local}@{domain.lower()}")

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class NewSubscriber:
    """A subscriber identity whose name and email both parsed."""

    email: SubscriberEmail
    name: SubscriberName

    @classmethod
    def parse(cls, *, name: str, email: str) -> NewSubscriber:
        return cls(email=SubscriberEmail.parse(email), name=SubscriberName.parse(name))
