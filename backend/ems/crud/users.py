# backend/ems/crud/users.py

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ems.core.errors import DuplicateError
from ems.core.security import hash_password
from ems.db.mongo import get_db, storage_errors
from ems.models.user import UserInDB, UserRole


def get_users_collection():
    """
    connect_to_mongo() 이후에 db가 세팅되어 있어야 합니다.
    """
    return get_db()["users"]


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ---------- READ ----------

async def get_user_by_id(user_id: str) -> Optional[UserInDB]:
    if isinstance(user_id, str):
        user_id = user_id.strip()
    with storage_errors("load user"):
        user = await get_users_collection().find_one({"_id": user_id})
    return UserInDB(**user) if user else None


async def get_user_by_email(email: str) -> Optional[UserInDB]:
    with storage_errors("load user"):
        user = await get_users_collection().find_one({"email": _normalize_email(email)})
    return UserInDB(**user) if user else None


async def get_users() -> List[UserInDB]:
    with storage_errors("list users"):
        cursor = get_users_collection().find({})
        return [UserInDB(**doc) async for doc in cursor]


# ---------- CREATE ----------

async def create_user(
    *,
    first_name: str,
    last_name: str,
    email: str,
    password: str,
    role: UserRole = UserRole.EMPLOYEE,
) -> UserInDB:
    email = _normalize_email(email)
    if await get_user_by_email(email) is not None:
        raise DuplicateError("User with this email already exists")

    now = _now()
    user = UserInDB(
        id=str(uuid.uuid4()),
        first_name=first_name,
        last_name=last_name,
        email=email,
        password_hash=hash_password(password),
        role=role,
        created_at=now,
        updated_at=now,
    )
    doc = user.model_dump(by_alias=True)
    doc["role"] = user.role.value

    with storage_errors("create user"):
        await get_users_collection().insert_one(doc)
    return user


# ---------- UPDATE ----------

async def update_user(user_id: str, changes: Dict[str, Any]) -> Optional[UserInDB]:
    """
    changes는 None이 제거된 dict. password는 해시로, email은 중복 검사 후 저장한다.
    """
    update_fields = dict(changes)

    if "email" in update_fields:
        update_fields["email"] = _normalize_email(update_fields["email"])
        existing = await get_user_by_email(update_fields["email"])
        if existing is not None and existing.id != user_id:
            raise DuplicateError("User with this email already exists")

    if "password" in update_fields:
        update_fields["password_hash"] = hash_password(update_fields.pop("password"))

    if "role" in update_fields:
        update_fields["role"] = UserRole(update_fields["role"]).value

    update_fields["updated_at"] = _now()

    with storage_errors("update user"):
        result = await get_users_collection().update_one(
            {"_id": user_id},
            {"$set": update_fields},
        )
    if result.matched_count == 0:
        return None

    return await get_user_by_id(user_id)
