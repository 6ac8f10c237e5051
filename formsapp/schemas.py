"""
Pydantic schemas for the forms API.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import AnyUrl, BaseModel, EmailStr, Field


class CredentialsPayload(BaseModel):
    """Signup/login body when strict validation is switched off."""

    email: str
    password: str


class SignupRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=72)


class LoginRequest(SignupRequest):
    pass


class QuestionSchema(BaseModel):
    questionText: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1)
    options: list[str] = Field(default_factory=list)
    questionImage: Optional[AnyUrl] = None

    def to_document(self) -> dict:
        return {
            "questionText": self.questionText,
            "type": self.type,
            "options": list(self.options),
            "questionImage": str(self.questionImage) if self.questionImage else "",
        }


class FormCreateRequest(BaseModel):
    title: str = Field(..., min_length=1)
    headerImage: Optional[AnyUrl] = None
    questions: list[QuestionSchema]


class FormResponse(BaseModel):
    id: str
    title: Optional[str] = None
    headerImage: Optional[str] = None
    questions: list
    createdAt: float


class FormListResponse(BaseModel):
    total: int
    page: int
    limit: int
    forms: list[FormResponse]


class UserSummary(BaseModel):
    id: str
    email: str


class LoginResponse(BaseModel):
    message: Literal["Login successful"]
    user: UserSummary
    token: Optional[str] = None


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    error: str
