"""
User service: registration, login and profile management
"""

from typing import Optional, Tuple

from cityfix.core.errors import NotFoundError, ValidationError
from cityfix.core.logger import logger
from cityfix.messaging.envelope import AuditEvent, utc_now
from cityfix.messaging.publisher import AuditEventPublisher
from cityfix.models.user import User
from cityfix.repositories.user import UserRepository
from cityfix.schemas.user import LoginRequest, RegisterRequest, UpdateUserRequest
from cityfix.security.passwords import BcryptPasswordHasher
from cityfix.security.tokens import JwtTokenProvider

AUDIT_EVENT_TYPE = "USER"
ENTITY_TYPE = "User"
INVALID_CREDENTIALS = "Invalid username or password"


class UserService:
    def __init__(
        self,
        repository: UserRepository,
        token_provider: JwtTokenProvider,
        audit_publisher: AuditEventPublisher,
        password_hasher: Optional[BcryptPasswordHasher] = None,
    ):
        self.repository = repository
        self.token_provider = token_provider
        self.audit_publisher = audit_publisher
        self.password_hasher = password_hasher or BcryptPasswordHasher()

    async def register(self, request: RegisterRequest, ip_address: Optional[str] = None) -> User:
        logger.info(f"Registering new user with username: {request.username}")

        if await self.repository.exists_by_username(request.username):
            logger.warning(f"Username already exists: {request.username}")
            raise ValidationError("Username already exists")

        if await self.repository.exists_by_email(request.email):
            logger.warning(f"Email already exists: {request.email}")
            raise ValidationError("Email already exists")

        user = await self.repository.create(User(
            id=await self.repository.next_id(),
            username=request.username,
            email=request.email,
            password_hash=self.password_hasher.hash_password(request.password),
            first_name=request.first_name,
            last_name=request.last_name,
            phone=request.phone,
            reports_count=0,
        ))
        logger.info(f"User registered successfully with id: {user.id}", user_id=user.id)

        await self._audit("register", user, "User registered", ip_address)
        return user

    async def login(self, request: LoginRequest, ip_address: Optional[str] = None) -> Tuple[User, str]:
        """
        Verify credentials and issue a token

        Returns:
            The user and a signed token; the caller places the token in a cookie
        """
        logger.info(f"User login attempt for username: {request.username}")

        user = await self.repository.get_by_username(request.username)
        if user is None:
            logger.warning(f"User not found with username: {request.username}")
            raise ValidationError(INVALID_CREDENTIALS)

        if not self.password_hasher.verify_password(password=request.password, password_hash=user.password_hash):
            logger.warning(f"Invalid password for user: {request.username}")
            raise ValidationError(INVALID_CREDENTIALS)

        token = self.token_provider.generate_token(user.id, user.username)
        logger.info(f"Token generated for user: {user.username}", user_id=user.id)

        await self._audit("login", user, "User logged in", ip_address)
        return user, token

    async def get_user(self, user_id: int) -> User:
        user = await self.repository.get_by_id(user_id)
        if user is None:
            logger.warning(f"User not found with id: {user_id}")
            raise NotFoundError("User not found")
        return user

    async def update_user(
        self,
        user_id: int,
        request: UpdateUserRequest,
        ip_address: Optional[str] = None,
    ) -> User:
        user = await self.get_user(user_id)
        changes = {}

        for field in ("first_name", "last_name", "phone"):
            value = getattr(request, field)
            if value is not None and value.strip():
                changes[field] = value

        if request.email and request.email != user.email:
            if await self.repository.exists_by_email(request.email):
                logger.warning(f"Email already exists: {request.email}")
                raise ValidationError("Email already exists")
            changes["email"] = request.email

        # reports_count belongs to the counter updater and is never written here
        changes["updated_at"] = utc_now()
        updated = await self.repository.update_fields(user_id, changes)
        if updated is None:
            raise NotFoundError("User not found")
        logger.info(f"User updated successfully with id: {updated.id}", user_id=updated.id)

        await self._audit("update", updated, "User profile updated", ip_address)
        return updated

    async def _audit(self, action: str, user: User, details: str, ip_address: Optional[str]) -> None:
        await self.audit_publisher.publish_audit(action, AuditEvent(
            event_type=AUDIT_EVENT_TYPE,
            user_id=user.id,
            username=user.username,
            entity_type=ENTITY_TYPE,
            entity_id=user.id,
            action=action,
            details=details,
            ip_address=ip_address,
            timestamp=utc_now(),
        ))
