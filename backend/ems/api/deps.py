from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer

from ems.core.config import settings
from ems.core.errors import AuthError, ForbiddenError
from ems.core.security import decode_access_token
from ems.crud import users as users_crud
from ems.models.user import UserInDB

# FastAPI가 스와거 문서에서 토큰 입력창을 보여주게 함
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_PREFIX}/users/login")


async def get_current_user_id(token: str = Depends(oauth2_scheme)) -> str:
    """
    JWT 토큰을 검증하고 user_id (sub)를 반환합니다.
    """
    payload = decode_access_token(token)
    if payload is None:
        raise AuthError("Could not validate credentials")
    return payload["sub"]


async def get_current_user(user_id: str = Depends(get_current_user_id)) -> UserInDB:
    user = await users_crud.get_user_by_id(user_id)
    if user is None:
        raise AuthError("Could not validate credentials")
    return user


async def require_admin(user: UserInDB = Depends(get_current_user)) -> UserInDB:
    if not user.is_admin:
        raise ForbiddenError("Admin access required")
    return user
