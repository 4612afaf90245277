import pytest

import gate
from errors import AlreadySignedIn, InvalidCredentials, Unauthorized


def test_require_signed_in_rejects_anonymous():
    ctx = gate.SessionContext()
    with pytest.raises(Unauthorized) as exc:
        gate.require_signed_in(ctx)
    assert exc.value.message == "You must be signed in to do that."


def test_require_signed_in_passes_without_side_effects():
    ctx = gate.SessionContext(signed_in_as="admin")
    gate.require_signed_in(ctx)
    assert ctx == gate.SessionContext(signed_in_as="admin")


def test_require_signed_out():
    gate.require_signed_out(gate.SessionContext())
    with pytest.raises(AlreadySignedIn) as exc:
        gate.require_signed_out(gate.SessionContext(signed_in_as="admin"))
    assert exc.value.message == "You are signed in already!"


def test_message_is_consumed_once():
    ctx = gate.SessionContext(pending_message="hello")
    assert ctx.consume_message() == "hello"
    assert ctx.consume_message() is None


def test_session_round_trip():
    session = {"signed_in_as": "admin", "message": "hi", "other": 1}
    ctx = gate.SessionContext.from_session(session)
    assert ctx.signed_in_as == "admin"
    ctx.consume_message()
    gate.sign_out(ctx)
    ctx.save(session)
    assert session == {"other": 1}


def test_authenticate(store):
    assert gate.authenticate(store, "admin", "secret")
    assert not gate.authenticate(store, "admin", "wrong")
    assert not gate.authenticate(store, "ghost", "secret")


def test_sign_in(store):
    ctx = gate.SessionContext()
    gate.sign_in(ctx, store, "admin", "secret")
    assert gate.is_signed_in(ctx)

    other = gate.SessionContext()
    with pytest.raises(InvalidCredentials) as exc:
        gate.sign_in(other, store, "ghost", "secret")
    assert exc.value.message == "Invalid Credentials"
    assert exc.value.username == "ghost"
    assert not gate.is_signed_in(other)
