from __future__ import annotations

import base64
import datetime as dt
import hashlib
import hmac
import json

import pytest
from jose import jwt

from todo_api.core.security import (
    ACCESS_TOKEN_LIFETIME,
    ACCESS_TOKEN_TYPE,
    REFRESH_TOKEN_TYPE,
    InvalidTokenError,
    TokenCodec,
    coerce_identity,
    utcnow,
)

SECRET = "codec-secret"


def _b64(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _forge(header: dict, payload: dict, *, key: str = SECRET) -> str:
    signing_input = f"{_b64(json.dumps(header).encode())}.{_b64(json.dumps(payload).encode())}"
    signature = hmac.new(key.encode(), signing_input.encode(), hashlib.sha256).digest()
    return f"{signing_input}.{_b64(signature)}"


def _claims(**overrides) -> dict:  # noqa: ANN003
    now = utcnow()
    payload = {
        "sub": "1",
        "email": "a@x.com",
        "type": ACCESS_TOKEN_TYPE,
        "iat": int(now.timestamp()),
        "exp": int((now + dt.timedelta(minutes=5)).timestamp()),
    }
    payload.update(overrides)
    return payload


def test_access_token_round_trip_carries_identity_and_lifetime() -> None:
    codec = TokenCodec(SECRET)
    now = utcnow().replace(microsecond=0)

    claims = codec.verify(codec.issue_access(7, "a@x.com", now=now))

    assert claims.subject == 7
    assert claims.email == "a@x.com"
    assert claims.token_type == ACCESS_TOKEN_TYPE
    assert claims.jti is None
    assert claims.expires_at - claims.issued_at == ACCESS_TOKEN_LIFETIME


def test_refresh_tokens_get_unique_jti_and_configured_lifetime() -> None:
    codec = TokenCodec(SECRET, refresh_lifetime=dt.timedelta(days=3))
    now = utcnow().replace(microsecond=0)

    first, first_jti = codec.issue_refresh(7, "a@x.com", now=now)
    second, second_jti = codec.issue_refresh(7, "a@x.com", now=now)

    assert first != second
    assert first_jti != second_jti
    claims = codec.verify(first, expected_type=REFRESH_TOKEN_TYPE)
    assert claims.jti == first_jti
    assert claims.expires_at - claims.issued_at == dt.timedelta(days=3)
    assert codec.refresh_lifetime() == dt.timedelta(days=3)


def test_token_signed_with_another_key_is_rejected() -> None:
    token = TokenCodec("some-other-secret").issue_access(1, "a@x.com")

    with pytest.raises(InvalidTokenError):
        TokenCodec(SECRET).verify(token)


@pytest.mark.parametrize("algorithm", ["none", "RS256", "ES256"])
def test_non_hmac_algorithm_headers_are_rejected(algorithm: str) -> None:
    token = _forge({"alg": algorithm, "typ": "JWT"}, _claims())

    with pytest.raises(InvalidTokenError):
        TokenCodec(SECRET).verify(token)


def test_unsigned_token_is_rejected() -> None:
    header = _b64(json.dumps({"alg": "none", "typ": "JWT"}).encode())
    payload = _b64(json.dumps(_claims()).encode())

    with pytest.raises(InvalidTokenError):
        TokenCodec(SECRET).verify(f"{header}.{payload}.")


def test_other_hmac_variants_signed_with_the_secret_are_accepted() -> None:
    token = jwt.encode(_claims(), SECRET, algorithm="HS512")

    assert TokenCodec(SECRET).verify(token).subject == 1


def test_expired_token_is_rejected() -> None:
    codec = TokenCodec(SECRET)
    token = codec.issue_access(1, "a@x.com", now=utcnow() - dt.timedelta(hours=1))

    with pytest.raises(InvalidTokenError) as excinfo:
        codec.verify(token)

    assert excinfo.value.reason == "expired"
    assert str(excinfo.value) == "invalid_token"


def test_expiry_is_checked_against_injected_clock() -> None:
    current = {"now": utcnow()}
    codec = TokenCodec(SECRET, clock=lambda: current["now"])
    token = codec.issue_access(1, "a@x.com")

    assert codec.verify(token).subject == 1
    current["now"] = current["now"] + ACCESS_TOKEN_LIFETIME + dt.timedelta(seconds=1)
    with pytest.raises(InvalidTokenError):
        codec.verify(token)


def test_tampered_signature_is_rejected() -> None:
    codec = TokenCodec(SECRET)
    header, payload, signature = codec.issue_access(1, "a@x.com").split(".")
    flipped = "A" if signature[5] != "A" else "B"
    tampered = f"{header}.{payload}.{signature[:5]}{flipped}{signature[6:]}"

    with pytest.raises(InvalidTokenError):
        codec.verify(tampered)


def test_tampered_payload_is_rejected() -> None:
    codec = TokenCodec(SECRET)
    header, _, signature = codec.issue_access(1, "a@x.com").split(".")
    forged_payload = _b64(json.dumps(_claims(sub="2")).encode())

    with pytest.raises(InvalidTokenError):
        codec.verify(f"{header}.{forged_payload}.{signature}")


@pytest.mark.parametrize("token", ["", "not-a-token", "a.b", "a.b.c", "...."])
def test_malformed_tokens_are_rejected(token: str) -> None:
    with pytest.raises(InvalidTokenError):
        TokenCodec(SECRET).verify(token)


@pytest.mark.parametrize("missing", ["sub", "exp", "iat"])
def test_tokens_missing_required_claims_are_rejected(missing: str) -> None:
    payload = _claims()
    payload.pop(missing)

    with pytest.raises(InvalidTokenError):
        TokenCodec(SECRET).verify(jwt.encode(payload, SECRET, algorithm="HS256"))


@pytest.mark.parametrize("subject", ["abc", "0", "-4", "", "1.5"])
def test_unusable_subjects_are_rejected(subject: str) -> None:
    token = jwt.encode(_claims(sub=subject), SECRET, algorithm="HS256")

    with pytest.raises(InvalidTokenError):
        TokenCodec(SECRET).verify(token)


def test_wrong_token_type_is_rejected() -> None:
    codec = TokenCodec(SECRET)
    refresh_token, _ = codec.issue_refresh(1, "a@x.com")

    with pytest.raises(InvalidTokenError) as excinfo:
        codec.verify(refresh_token, expected_type=ACCESS_TOKEN_TYPE)
    assert excinfo.value.reason == "wrong_type"

    with pytest.raises(InvalidTokenError):
        codec.verify(codec.issue_access(1, "a@x.com"), expected_type=REFRESH_TOKEN_TYPE)


@pytest.mark.parametrize(
    ("value", "expected"),
    [(7, 7), (3.0, 3), ("42", 42), (" 9 ", 9)],
)
def test_coerce_identity_accepts_integral_values(value, expected: int) -> None:  # noqa: ANN001
    assert coerce_identity(value) == expected


@pytest.mark.parametrize("value", [True, False, 0, -1, 1.5, "abc", "", None, [1], "²", "٣"])
def test_coerce_identity_rejects_everything_else(value) -> None:  # noqa: ANN001
    with pytest.raises(InvalidTokenError):
        coerce_identity(value)


def test_codec_requires_secret_hmac_algorithm_and_positive_lifetime() -> None:
    with pytest.raises(ValueError):
        TokenCodec("")
    with pytest.raises(ValueError):
        TokenCodec(SECRET, algorithm="RS256")
    with pytest.raises(ValueError):
        TokenCodec(SECRET, refresh_lifetime=dt.timedelta(0))


@pytest.mark.parametrize("subject", [7, 7.0, "7"])
def test_numeric_and_string_subjects_are_accepted(subject) -> None:  # noqa: ANN001
    token = jwt.encode(_claims(sub=subject, type=REFRESH_TOKEN_TYPE, jti="abc"), SECRET, algorithm="HS256")

    claims = TokenCodec(SECRET).verify(token, expected_type=REFRESH_TOKEN_TYPE)

    assert claims.subject == 7
    assert claims.jti == "abc"


def test_fresh_token_is_valid_under_a_clock_behind_wall_time() -> None:
    behind = utcnow() - dt.timedelta(hours=1)
    codec = TokenCodec(SECRET, clock=lambda: behind)

    token = codec.issue_access(1, "a@x.com")

    assert codec.verify(token).subject == 1


def test_wall_clock_expired_token_is_valid_under_an_earlier_clock() -> None:
    issued = utcnow() - dt.timedelta(hours=2)
    codec = TokenCodec(SECRET, clock=lambda: issued + dt.timedelta(minutes=1))

    token = codec.issue_access(1, "a@x.com", now=issued)

    assert codec.verify(token).subject == 1


def test_superscript_digit_subject_is_an_invalid_token() -> None:
    token = jwt.encode(_claims(sub="²"), SECRET, algorithm="HS256")

    with pytest.raises(InvalidTokenError):
        TokenCodec(SECRET).verify(token)


def test_out_of_range_expiry_is_an_invalid_token() -> None:
    token = jwt.encode(_claims(exp=10**20), SECRET, algorithm="HS256")

    with pytest.raises(InvalidTokenError):
        TokenCodec(SECRET).verify(token)
