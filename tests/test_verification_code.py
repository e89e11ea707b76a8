from datetime import datetime, timedelta

import pytest

from app.core.constants import VerificationCodeType
from app.core.exceptions import CodeExpiredError, InvalidCodeError
from app.core.security import generate_otp
from app.services import verification_code_service as vcs_module
from app.services.verification_code_service import VerificationCodeService

EMAIL = "bob@example.com"
TTL = timedelta(minutes=5)


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 1, 1, 12, 0, 0))


@pytest.fixture
def service(clock):
    return VerificationCodeService(ttl=TTL, clock=clock)


def test_generate_otp_is_six_digits():
    for _ in range(200):
        code = generate_otp()
        assert len(code) == 6 and code.isdigit()
        assert 100000 <= int(code) <= 999999


async def test_issue_then_validate(db, service):
    code = await service.issue(db, email=EMAIL, purpose=VerificationCodeType.REGISTER)

    db_code = await service.validate(db, email=EMAIL, code=code, purpose=VerificationCodeType.REGISTER)
    assert db_code.expires_at == datetime(2024, 1, 1, 12, 5, 0)


async def test_code_expired_exactly_at_expires_at(db, service, clock):
    code = await service.issue(db, email=EMAIL, purpose=VerificationCodeType.REGISTER)

    clock.now = clock.now + TTL
    with pytest.raises(CodeExpiredError):
        await service.validate(db, email=EMAIL, code=code, purpose=VerificationCodeType.REGISTER)


async def test_code_valid_one_millisecond_before_expiry(db, service, clock):
    code = await service.issue(db, email=EMAIL, purpose=VerificationCodeType.REGISTER)

    clock.now = clock.now + TTL - timedelta(milliseconds=1)
    await service.validate(db, email=EMAIL, code=code, purpose=VerificationCodeType.REGISTER)


async def test_wrong_code_is_invalid(db, service, monkeypatch):
    monkeypatch.setattr(vcs_module, "generate_otp", lambda: "123456")
    await service.issue(db, email=EMAIL, purpose=VerificationCodeType.REGISTER)

    with pytest.raises(InvalidCodeError):
        await service.validate(db, email=EMAIL, code="654321", purpose=VerificationCodeType.REGISTER)


async def test_reissue_overwrites_previous_code(db, service, clock, monkeypatch):
    codes = iter(["111111", "222222"])
    monkeypatch.setattr(vcs_module, "generate_otp", lambda: next(codes))

    await service.issue(db, email=EMAIL, purpose=VerificationCodeType.FORGOT_PASSWORD)
    clock.now = clock.now + timedelta(minutes=4)
    await service.issue(db, email=EMAIL, purpose=VerificationCodeType.FORGOT_PASSWORD)

    with pytest.raises(InvalidCodeError):
        await service.validate(db, email=EMAIL, code="111111", purpose=VerificationCodeType.FORGOT_PASSWORD)

    # Expiração também foi renovada: 6 minutos depois do primeiro pedido ainda vale
    clock.now = clock.now + timedelta(minutes=2)
    await service.validate(db, email=EMAIL, code="222222", purpose=VerificationCodeType.FORGOT_PASSWORD)


async def test_purposes_are_independent(db, service, monkeypatch):
    monkeypatch.setattr(vcs_module, "generate_otp", lambda: "333333")
    await service.issue(db, email=EMAIL, purpose=VerificationCodeType.REGISTER)

    with pytest.raises(InvalidCodeError):
        await service.validate(db, email=EMAIL, code="333333", purpose=VerificationCodeType.LOGIN)


async def test_consumed_code_cannot_be_reused(db, service):
    code = await service.issue(db, email=EMAIL, purpose=VerificationCodeType.REGISTER)
    await service.consume(db, email=EMAIL, code=code, purpose=VerificationCodeType.REGISTER)

    with pytest.raises(InvalidCodeError):
        await service.validate(db, email=EMAIL, code=code, purpose=VerificationCodeType.REGISTER)
