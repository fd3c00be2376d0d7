from pydantic import BaseModel


class LoginRequest(BaseModel):
    email: str | None = None
    password: str | None = None


class LoginUserOut(BaseModel):
    id: str
    user_id: str
    email: str | None = None
    username: str | None = None
    full_name: str | None = None
    user_type: str | None = None
    is_approved: bool | None = None
    profile_picture_url: str | None = None


class LoginSessionOut(BaseModel):
    access_token: str
    refresh_token: str | None = None


class LoginResponse(BaseModel):
    success: bool = True
    user: LoginUserOut
    session: LoginSessionOut


class MessageResponse(BaseModel):
    success: bool = True
    message: str
