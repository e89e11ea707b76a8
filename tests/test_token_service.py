from datetime import timedelta

import pytest

from app.core.exceptions import ExpiredTokenError, MalformedTokenError
from app.schemas.token import AccessTokenClaims, RefreshTokenClaims
from app.services.token_service import TokenService

ACCESS_SECRET = "access-secret-for-tests"
REFRESH_SECRET = "refresh-secret-for-tests"


def make_service(**overrides) -> TokenService:
    options = dict(
        access_secret=ACCESS_SECRET,
        refresh_secret=REFRESH_SECRET,
        access_expires=timedelta(minutes=15),
        refresh_expires=timedelta(days=7),
    )
    options.update(overrides)
    return TokenService(**options)


def access_claims() -> AccessTokenClaims:
    return AccessTokenClaims(user_id=1, email="alice@example.com", device_id=10, role_id=2, role_name="CLIENT")


class TestSignAndVerify:

    def test_access_token_round_trip(self):
        service = make_service()
        payload = service.verify_access_token(service.sign_access_token(access_claims()))

        assert payload.user_id == 1
        assert payload.device_id == 10
        assert payload.role_name == "CLIENT"
        assert payload.exp - payload.iat == 15 * 60
        assert payload.uuid

    def test_refresh_token_round_trip(self):
        service = make_service()
        token = service.sign_refresh_token(RefreshTokenClaims(user_id=1, email="alice@example.com"))
        payload = service.verify_refresh_token(token)

        assert payload.user_id == 1
        assert payload.exp - payload.iat == 7 * 24 * 60 * 60

    def test_same_claims_produce_different_tokens(self):
        service = make_service()
        first = service.sign_access_token(access_claims())
        second = service.sign_access_token(access_claims())

        assert first != second
        assert service.verify_access_token(first).uuid != service.verify_access_token(second).uuid

    def test_claims_use_camel_case_names(self):
        from jose import jwt

        token = make_service().sign_access_token(access_claims())
        raw = jwt.get_unverified_claims(token)

        assert {"userId", "email", "deviceId", "roleId", "roleName", "uuid", "iat", "exp"} == set(raw)


class TestVerificationFailures:

    def test_expired_token(self):
        service = make_service(access_expires=timedelta(seconds=-5))
        token = service.sign_access_token(access_claims())

        with pytest.raises(ExpiredTokenError):
            service.verify_access_token(token)

    def test_access_token_is_not_a_refresh_token(self):
        service = make_service()
        token = service.sign_access_token(access_claims())

        with pytest.raises(MalformedTokenError):
            service.verify_refresh_token(token)

    def test_refresh_token_is_not_an_access_token(self):
        service = make_service()
        token = service.sign_refresh_token(RefreshTokenClaims(user_id=1, email="alice@example.com"))

        with pytest.raises(MalformedTokenError):
            service.verify_access_token(token)

    def test_claims_shape_checked_even_with_shared_secret(self):
        service = make_service(refresh_secret=ACCESS_SECRET)
        token = service.sign_refresh_token(RefreshTokenClaims(user_id=1, email="alice@example.com"))

        # Assinatura confere, mas faltam deviceId/roleId/roleName
        with pytest.raises(MalformedTokenError):
            service.verify_access_token(token)

    def test_garbage_token(self):
        with pytest.raises(MalformedTokenError):
            make_service().verify_access_token("not-a-jwt")
