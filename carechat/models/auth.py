from pydantic import BaseModel, Field


class SignUpRequest(BaseModel):
    email: str
    password: str = Field(min_length=8)
    full_name: str
    role: str = "intern"
    department: str | None = None


class SignInRequest(BaseModel):
    email: str
    password: str


class Profile(BaseModel):
    id: str
    email: str
    full_name: str
    role: str
    department: str | None = None
    created_at: str


class Session(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_at: str
    user: Profile
