from dataclasses import dataclass
from typing import MutableMapping

from credentials import CredentialStore
from errors import AlreadySignedIn, InvalidCredentials, Unauthorized

SIGNED_IN_KEY = "signed_in_as"
MESSAGE_KEY = "message"

MUST_SIGN_IN = "You must be signed in to do that."
ALREADY_SIGNED_IN = "You are signed in already!"


@dataclass
class SessionContext:
    """Per-request view of the two session fields the core reads and writes."""

    signed_in_as: str | None = None
    pending_message: str | None = None

    @classmethod
    def from_session(cls, session: MutableMapping) -> "SessionContext":
        return cls(signed_in_as=session.get(SIGNED_IN_KEY),
                   pending_message=session.get(MESSAGE_KEY))

    def save(self, session: MutableMapping) -> None:
        for key, value in ((SIGNED_IN_KEY, self.signed_in_as),
                           (MESSAGE_KEY, self.pending_message)):
            if value is None:
                session.pop(key, None)
            elif session.get(key) != value:
                session[key] = value

    def flash(self, message: str) -> None:
        self.pending_message = message

    def consume_message(self) -> str | None:
        message, self.pending_message = self.pending_message, None
        return message


def is_signed_in(ctx: SessionContext) -> bool:
    return ctx.signed_in_as is not None


def require_signed_in(ctx: SessionContext) -> None:
    if not is_signed_in(ctx):
        raise Unauthorized(MUST_SIGN_IN)


def require_signed_out(ctx: SessionContext) -> None:
    if is_signed_in(ctx):
        raise AlreadySignedIn(ALREADY_SIGNED_IN)


def authenticate(store: CredentialStore, username: str, password: str) -> bool:
    return store.verify(username, password)


def sign_in(ctx: SessionContext, store: CredentialStore, username: str, password: str) -> None:
    if not authenticate(store, username, password):
        raise InvalidCredentials(username)
    ctx.signed_in_as = username


def sign_out(ctx: SessionContext) -> None:
    ctx.signed_in_as = None
