from typing import Optional

from pydantic import BaseModel, Field


class VerifiedUser(BaseModel):
    id: str
    email: Optional[str] = None
    username: Optional[str] = None


class CallerIdentity(BaseModel):
    id: str = Field(
        description="Verified user id issued by the identity provider.",
        examples=["5f0a1c2d-3b4e-4f60-8a7b-9c0d1e2f3a4b"],
    )
    email: Optional[str] = Field(default=None, examples=["alice@example.org"])
    username: Optional[str] = Field(default=None, examples=["alice"])
