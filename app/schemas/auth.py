# app/schemas/auth.py
from pydantic import BaseModel


class CredentialsIn(BaseModel):
    email: str = ""
    password: str = ""


class UserOut(BaseModel):
    id: int
    email: str

    class Config:
        from_attributes = True


class AuthOut(BaseModel):
    message: str
    token: str
    user: UserOut
