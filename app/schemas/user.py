from typing import Optional
from pydantic import BaseModel, EmailStr

from app.core.roles import Role
from app.models.enums import UserStatus


# ---------------------------------------------------------
# BASE
# ---------------------------------------------------------
class UserBase(BaseModel):
    full_name: str
    email: EmailStr


# ---------------------------------------------------------
# CREATE USER (Manager and above provision accounts)
# ---------------------------------------------------------
class UserCreate(UserBase):
    role: Role = Role.User
    department_id: Optional[str] = None
    phone: Optional[str] = None


# ---------------------------------------------------------
# UPDATE USER
# ---------------------------------------------------------
class UserUpdate(BaseModel):
    full_name: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[Role] = None
    department_id: Optional[str] = None
    status: Optional[UserStatus] = None


# ---------------------------------------------------------
# READ USER (response)
# ---------------------------------------------------------
class UserRead(BaseModel):
    id: str
    full_name: str
    email: str
    role: str
    department_id: Optional[str] = None
    department_name: Optional[str] = None
    status: str

    class Config:
        from_attributes = True
