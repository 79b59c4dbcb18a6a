from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

# Fields are optional here so missing values get the same 400 messages as
# malformed ones, from the service layer.


class RegisterSchema(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    locale: Optional[str] = None

class VerifySchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token: Optional[str] = None
    password_encoded: Optional[str] = Field(default=None, alias="passwordEncoded")

class LoginSchema(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None

class OtpVerifySchema(BaseModel):
    code: Optional[str] = None

class PasswordChangeSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current_password: Optional[str] = Field(default=None, alias="currentPassword")
    new_password: Optional[str] = Field(default=None, alias="newPassword")
