"""
Пользователи: список с фильтром, сортировкой и пагинацией, плюс CRUD по id.
"""
import math
from typing import Any, Dict, Optional

import pydantic
from fastapi import APIRouter, Body, Depends, Query
from pymongo.errors import DuplicateKeyError, PyMongoError

from catalog_api.api.deps import RequestAudit, get_user_repository, request_audit
from catalog_api.core import errors
from catalog_api.core.query import USER_QUERY
from catalog_api.core.security import hash_password
from catalog_api.repositories.users import ALLOWED_UPDATES, UserRepository
from catalog_api.schemas import UserReplace, UserUpdate, public_user

router = APIRouter(tags=["Users"])

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
DUPLICATE_EMAIL = "User with this email already exists"


def parse_positive_int(raw: Optional[str], default: int, message: str) -> int:
    """page/limit: только целые > 0, иначе 400 ещё до запроса в базу"""
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise errors.ValidationError(message)
    if value <= 0:
        raise errors.ValidationError(message)
    return value


@router.get("")
def list_users(
    filter: Optional[str] = Query(None, description="JSON-фильтр по полям пользователя"),
    sort: Optional[str] = Query(None, description="JSON, например {\"createdAt\": -1}"),
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    users: UserRepository = Depends(get_user_repository),
    trail: RequestAudit = Depends(request_audit),
):
    try:
        page_number = parse_positive_int(page, DEFAULT_PAGE, "Invalid page number")
        limit_number = parse_positive_int(limit, DEFAULT_LIMIT, "Invalid limit number")
        query = USER_QUERY.build_filter(filter)
        sort_spec = USER_QUERY.build_sort(sort)
    except errors.ValidationError as e:
        raise trail.fail(e)

    try:
        items, total = users.list(query, sort=sort_spec, page=page_number, limit=limit_number)
    except PyMongoError as e:
        raise trail.storage_error("Error while fetching users", e)

    trail.info(
        f"GET /users - Filter: {filter or 'None'}, Sort: {sort or 'None'}, "
        f"Page: {page_number}, Limit: {limit_number}, Users Count: {len(items)}"
    )
    return {
        "message": "Users fetched!",
        "users": [public_user(u) for u in items],
        "totalUsers": total,
        "page": page_number,
        "totalPages": math.ceil(total / limit_number),
    }


@router.get("/{user_id}")
def get_user(
    user_id: str,
    users: UserRepository = Depends(get_user_repository),
    trail: RequestAudit = Depends(request_audit),
):
    try:
        user = users.get(user_id)
    except PyMongoError as e:
        raise trail.storage_error("Error while fetching user", e)

    if user is None:
        raise trail.fail(errors.NotFoundError("User not found!"))

    trail.info(f"GET /users/{user_id} - User fetched")
    return {"message": "User fetched!", "user": public_user(user)}


@router.patch("/{user_id}")
def update_user(
    user_id: str,
    payload: Dict[str, Any] = Body(...),
    users: UserRepository = Depends(get_user_repository),
    trail: RequestAudit = Depends(request_audit),
):
    """Меняются только firstName, lastName, email и password"""
    trail.payload = payload

    invalid_fields = [field for field in payload if field not in ALLOWED_UPDATES]
    if invalid_fields:
        raise trail.fail(errors.ValidationError("Invalid update fields", invalidFields=invalid_fields))

    try:
        update = UserUpdate.model_validate(payload)
    except pydantic.ValidationError as e:
        raise trail.fail(errors.ValidationError("Validation failed", errors=errors.format_validation_errors(e.errors())))

    fields = update.to_document(exclude_unset=True)
    if "password" in fields:
        fields["password"] = hash_password(fields["password"])

    try:
        user = users.update_partial(user_id, fields)
    except DuplicateKeyError:
        raise trail.fail(errors.DuplicateKeyError(DUPLICATE_EMAIL))
    except PyMongoError as e:
        raise trail.storage_error("Error while updating user", e)

    if user is None:
        raise trail.fail(errors.NotFoundError("User not found"))

    trail.info(f"PATCH /users/{user_id} - User updated")
    return {"message": "User updated!", "user": public_user(user)}


@router.put("/{user_id}")
def replace_user(
    user_id: str,
    user_data: UserReplace,
    users: UserRepository = Depends(get_user_repository),
    trail: RequestAudit = Depends(request_audit),
):
    trail.payload = user_data.model_dump(by_alias=True, mode="json")

    fields = user_data.to_document()
    fields["password"] = hash_password(user_data.password)

    try:
        user = users.replace(user_id, fields)
    except DuplicateKeyError:
        raise trail.fail(errors.DuplicateKeyError(DUPLICATE_EMAIL))
    except PyMongoError as e:
        raise trail.storage_error("Error while replacing user", e)

    if user is None:
        raise trail.fail(errors.NotFoundError("User not found"))

    trail.info(f"PUT /users/{user_id} - User replaced")
    return {"message": "User replaced!", "user": public_user(user)}


@router.delete("/{user_id}")
def delete_user(
    user_id: str,
    users: UserRepository = Depends(get_user_repository),
    trail: RequestAudit = Depends(request_audit),
):
    try:
        user = users.delete(user_id)
    except PyMongoError as e:
        raise trail.storage_error("Error while deleting user", e)

    if user is None:
        raise trail.fail(errors.NotFoundError("User not found"))

    trail.info(f"DELETE /users/{user_id} - User deleted")
    return {"message": "User deleted!", "user": public_user(user)}
