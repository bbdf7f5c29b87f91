"""
Регистрация и вход. Ручки открытые, токен выдаётся на 1 час.
"""
import logging

from fastapi import APIRouter, Depends, status
from pymongo.errors import DuplicateKeyError, PyMongoError

from catalog_api.api.deps import (
    RequestAudit,
    get_settings,
    get_user_repository,
    request_audit_with_headers,
)
from catalog_api.config import Settings
from catalog_api.core import errors
from catalog_api.core.security import create_access_token, hash_password, verify_password
from catalog_api.repositories.users import UserRepository
from catalog_api.schemas import TokenResponse, UserLogin, UserSignup

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Authentication"])


def issue_token(user: dict, users: UserRepository, settings: Settings) -> str:
    """Выдаёт токен и запоминает его у пользователя"""
    token = create_access_token({"id": str(user["_id"]), "email": user["email"]}, settings)
    users.set_token(user["_id"], token)
    return token


@router.post("/signup", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def signup(
    user_data: UserSignup,
    users: UserRepository = Depends(get_user_repository),
    settings: Settings = Depends(get_settings),
    trail: RequestAudit = Depends(request_audit_with_headers),
):
    """Регистрация нового пользователя"""
    trail.payload = user_data.model_dump(by_alias=True, mode="json")
    logger.info("🔄 Попытка регистрации: %s", user_data.email)

    try:
        if users.find_by_email(user_data.email):
            logger.warning("⚠️ Email уже зарегистрирован: %s", user_data.email)
            raise trail.fail(errors.DuplicateKeyError("User already exists"), level="INFO")

        fields = user_data.to_document()
        fields["password"] = hash_password(user_data.password)
        fields["token"] = None
        user = users.create(fields)
        token = issue_token(user, users, settings)
    except DuplicateKeyError:
        # Параллельная регистрация с тем же email
        raise trail.fail(errors.DuplicateKeyError("User already exists"), level="INFO")
    except PyMongoError as e:
        logger.error("Ошибка при создании пользователя: %s", e, exc_info=True)
        raise trail.fail(errors.InternalError("Error creating user", error=str(e)), level="ERROR")

    logger.info("Пользователь зарегистрирован: %s", user["email"])
    trail.info(f"User created successfully - Email: {user['email']}, ID: {user['_id']}", status.HTTP_201_CREATED)
    return TokenResponse(message="User created successfully!", token=token)


@router.post("/login", response_model=TokenResponse)
def login(
    credentials: UserLogin,
    users: UserRepository = Depends(get_user_repository),
    settings: Settings = Depends(get_settings),
    trail: RequestAudit = Depends(request_audit_with_headers),
):
    """Вход пользователя"""
    trail.payload = credentials.model_dump(mode="json")
    logger.info("🔄 Попытка входа: %s", credentials.email)

    try:
        user = users.find_by_email(credentials.email)
        if not user or not verify_password(credentials.password, user.get("password", "")):
            logger.warning("⚠️ Неудачная попытка входа: %s", credentials.email)
            raise trail.fail(errors.UnauthorizedError("Invalid credentials"))

        token = issue_token(user, users, settings)
    except PyMongoError as e:
        logger.error("Ошибка при входе: %s", e, exc_info=True)
        raise trail.fail(errors.InternalError("Error during login", error=str(e)), level="ERROR")

    logger.info("Пользователь вошёл: %s", user["email"])
    trail.info(f"Login successful - Email: {user['email']}, ID: {user['_id']}")
    return TokenResponse(message="Login successful!", token=token)
