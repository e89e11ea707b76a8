"""Helpers dos testes HTTP: registro via OTP, login e criação direta de usuários."""
from app.core.constants import VerificationCodeType
from app.crud.crud_role import role as crud_role
from app.crud.crud_user import user as crud_user

API = "/api/v1"
API_KEY = "test-api-key-0123456789"
DEFAULT_PASSWORD = "Str0ng!Pass"


async def register_user(client, sent_codes, email: str, password: str = DEFAULT_PASSWORD) -> dict:
    response = await client.post(f"{API}/auth/otp", json={"email": email, "type": "REGISTER"})
    assert response.status_code == 200, response.text
    code = sent_codes[(email, VerificationCodeType.REGISTER.value)]
    response = await client.post(
        f"{API}/auth/register",
        json={
            "email": email,
            "name": "Test User",
            "phoneNumber": "0912345678",
            "password": password,
            "confirmPassword": password,
            "code": code,
        },
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


async def login(client, email: str, password: str = DEFAULT_PASSWORD, **extra) -> dict:
    response = await client.post(
        f"{API}/auth/login",
        json={"email": email, "password": password, **extra},
        headers={"User-Agent": "pytest-agent"},
    )
    assert response.status_code == 200, response.text
    return response.json()["data"]


async def create_user_with_role(session_factory, *, email: str, role_name: str, password: str = DEFAULT_PASSWORD):
    async with session_factory() as session:
        db_role = await crud_role.get_by_name(session, name=role_name)
        db_user = await crud_user.create(
            session, email=email, password=password, role_id=db_role.id, name="Seeded", phone_number="0000000000"
        )
        await session.commit()
        return db_user


def bearer(access_token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {access_token}"}
