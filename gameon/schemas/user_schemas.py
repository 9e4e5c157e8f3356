from datetime import datetime
from pydantic import BaseModel, EmailStr, Field, HttpUrl
from typing import Optional

class UserBase(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    full_name: str = Field(..., min_length=1)
    avatar_url: Optional[HttpUrl] = None

class UserCreate(UserBase):
    password: str = Field(..., min_length=8)

class UserRead(BaseModel):
    # Never exposes the password hash.
    id: int
    username: str
    email: EmailStr
    full_name: str
    avatar_url: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
