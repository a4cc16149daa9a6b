from pydantic import BaseModel


class AccessTokenPayload(BaseModel):
    sub: str
    userId: int
    username: str
    exp: int | None = None
    iat: int | None = None


class CurrentUser(BaseModel):
    user_id: int
    username: str
