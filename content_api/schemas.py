from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


# --- Article ---

class ArticleCreate(BaseModel):
    title: str = Field(max_length=300)
    content: str
    author_id: int


class ArticleUpdate(BaseModel):
    """Partial update: only fields present in the payload are applied."""

    title: str | None = Field(None, max_length=300)
    content: str | None = None


# --- User ---

class UserRegister(BaseModel):
    name: str = Field(max_length=150)
    email: str = Field(max_length=255)
    password: str = Field(max_length=72)  # bcrypt ignores bytes past 72


class UserLogin(BaseModel):
    email: str
    password: str


class UserUpdate(BaseModel):
    name: str | None = Field(None, max_length=150)
    email: str | None = Field(None, max_length=255)
    password: str | None = Field(None, max_length=72)


class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


class UserPage(BaseModel):
    users: list[UserResponse]
    total: int
    limit: int
    offset: int


class LoginResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    user: UserResponse


# --- Media ---

class MediaResponse(BaseModel):
    id: int
    name: str
    path: str
    url: str
    created_at: datetime
    updated_at: datetime


class MediaPage(BaseModel):
    media: list[MediaResponse]
    total: int
    limit: int
    offset: int


# --- Metrics ---

class MetricsResponse(BaseModel):
    total_articles: int
    total_users: int
    total_media: int
    cache_backend: str
    cache_info: dict = {}
