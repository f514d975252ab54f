import pytest

from app.domain.users.services import (
    EmailAlreadyRegistered,
    IdentityProvider,
    InvalidCredentials,
    hash_password,
    verify_password,
)


def test_password_hash_round_trip():
    hashed = hash_password("correct horse battery")

    assert hashed != "correct horse battery"
    assert verify_password("correct horse battery", hashed)
    assert not verify_password("wrong password", hashed)


def test_verify_against_garbage_hash_is_false():
    assert verify_password("whatever1", "not-a-bcrypt-hash") is False


@pytest.mark.asyncio
async def test_sign_up_notifies_subscribers(db):
    provider = IdentityProvider(db)
    events = []
    provider.subscribe(events.append)

    user = await provider.sign_up(" New@Example.com ", "s3cret-pass")

    assert user.email == "new@example.com"
    assert events == [user.id]


@pytest.mark.asyncio
async def test_duplicate_sign_up_is_rejected(db):
    provider = IdentityProvider(db)
    await provider.sign_up("dup@example.com", "s3cret-pass")

    with pytest.raises(EmailAlreadyRegistered):
        await provider.sign_up("DUP@example.com", "another-pass")


@pytest.mark.asyncio
async def test_sign_in_checks_password(db):
    provider = IdentityProvider(db)
    await provider.sign_up("me@example.com", "s3cret-pass")

    with pytest.raises(InvalidCredentials):
        await provider.sign_in("me@example.com", "wrong-pass")
    with pytest.raises(InvalidCredentials):
        await provider.sign_in("nobody@example.com", "s3cret-pass")

    user = await provider.sign_in("me@example.com", "s3cret-pass")
    assert provider.current_user is user


@pytest.mark.asyncio
async def test_sign_out_notifies_none_and_unsubscribe_stops_events(db):
    provider = IdentityProvider(db)
    events = []
    unsubscribe = provider.subscribe(events.append)

    provider.sign_out()
    unsubscribe()
    provider.sign_out()

    assert events == [None]
