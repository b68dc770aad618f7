"""
Authentication and profile request schemas
"""
import re
from typing import Annotated, Literal, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, Field, model_validator

PASSWORD_PATTERN = re.compile(r'^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]')
USERNAME_PATTERN = r'^[a-zA-Z0-9_-]+$'
PHONE_PATTERN = re.compile(r'^[+]?[0-9\s\-()]{10,15}$')


def check_password_strength(value):
    if len(value) < 8:
        raise ValueError('Password must be at least 8 characters long')
    if len(value) > 128:
        raise ValueError('Password cannot exceed 128 characters')
    if not PASSWORD_PATTERN.match(value):
        raise ValueError('Password must contain at least: 1 lowercase letter, 1 uppercase letter, '
                         '1 number, and 1 special character (@$!%*?&)')
    return value


def check_phone_number(value):
    if value and not PHONE_PATTERN.match(value):
        raise ValueError('Please provide a valid phone number')
    return value


StrongPassword = Annotated[str, AfterValidator(check_password_strength)]
PhoneNumber = Annotated[Optional[str], AfterValidator(check_phone_number)]
Username = Annotated[str, Field(min_length=3, max_length=50, pattern=USERNAME_PATTERN)]


class SignupRequest(BaseModel):
    username: Username
    email: EmailStr
    password: StrongPassword
    address: Optional[str] = Field("", max_length=255)
    phone_number: PhoneNumber = ""
    # Admins are created from the command line, never through signup
    role: Literal['user'] = 'user'


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class GoogleLoginRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id_token: str = Field(..., min_length=1, alias='idToken')


class RequestPasswordResetRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token: str = Field(..., min_length=1)
    new_password: StrongPassword = Field(..., alias='newPassword')


class ChangePasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current_password: str = Field(..., min_length=1, alias='currentPassword')
    new_password: StrongPassword = Field(..., alias='newPassword')
    confirm_password: str = Field(..., alias='confirmPassword')

    @model_validator(mode='after')
    def passwords_match(self):
        if self.new_password != self.confirm_password:
            raise ValueError('Password confirmation does not match')
        return self


class UpdateProfileRequest(BaseModel):
    username: Optional[Username] = None
    address: Optional[str] = Field(None, max_length=255)
    phone_number: PhoneNumber = None
