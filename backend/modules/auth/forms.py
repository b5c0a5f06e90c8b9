"""
Credential form validation for password sign-in and registration.
"""

import re

from pydantic import BaseModel, EmailStr, Field, ValidationError, field_validator

EMAIL_MESSAGE = "Please enter a valid email address"
_STRENGTH = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d).+$")


class LoginForm(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class RegisterForm(BaseModel):
    email: EmailStr
    password: str

    @field_validator("password")
    @classmethod
    def check_password(cls, value: str) -> str:
        if len(value) < 6:
            raise ValueError("Password must be at least 6 characters")
        if len(value) > 72:
            raise ValueError("Password must be less than 72 characters")
        if not _STRENGTH.match(value):
            raise ValueError(
                "Password must contain at least one uppercase letter, "
                "one lowercase letter, and one number"
            )
        return value


def field_errors(exc: ValidationError) -> dict[str, list[str]]:
    """Group validation messages by field name."""
    errors: dict[str, list[str]] = {}
    for error in exc.errors():
        field = str(error["loc"][0]) if error["loc"] else "form"
        if field == "email":
            message = EMAIL_MESSAGE
        elif field == "password" and error["type"] in ("string_too_short", "missing"):
            message = "Password is required"
        else:
            message = error["msg"].removeprefix("Value error, ")
        errors.setdefault(field, [])
        if message not in errors[field]:
            errors[field].append(message)
    return errors
