# auth_core/app/core/constants.py
import enum


class UserStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    BLOCKED = "BLOCKED"


class VerificationCodeType(str, enum.Enum):
    REGISTER = "REGISTER"
    FORGOT_PASSWORD = "FORGOT_PASSWORD"
    LOGIN = "LOGIN"
    DISABLE_2FA = "DISABLE_2FA"


class HTTPMethod(str, enum.Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"
    OPTIONS = "OPTIONS"
    HEAD = "HEAD"


class RoleName(str, enum.Enum):
    ADMIN = "ADMIN"
    CLIENT = "CLIENT"
    SELLER = "SELLER"
