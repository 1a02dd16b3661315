# ecotrack/schemas.py
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Any, Optional


class RegisterIn(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class LoginIn(BaseModel):
    email: EmailStr
    password: str


class TokenOut(BaseModel):
    token: str
    email: EmailStr


class WasteIn(BaseModel):
    # amount is validated by rates.parse_amount so "50" and 50 are both accepted
    model_config = ConfigDict(populate_by_name=True)

    waste_type: Optional[str] = Field(None, alias="wasteType")
    waste_amount: Optional[Any] = Field(None, alias="wasteAmount")


class ShippingIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    first_name: str = Field(..., alias="firstName", min_length=1)
    last_name: str = Field(..., alias="lastName", min_length=1)
    address: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    zip: str = Field(..., min_length=1)
