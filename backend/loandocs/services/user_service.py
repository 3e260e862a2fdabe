"""
User Service - user records, password hashing and loan access.

Usernames are stored lower-cased and must be unique. The uniqueness check
runs before the insert without a lock; the store's username index still
rejects a concurrent duplicate.
"""
from typing import Any, Dict, Iterable, List, Optional

from passlib.context import CryptContext

from .database.base import DatabaseInterface, DuplicateKeyError
from ..api.exceptions import DuplicateUserError, UserNotFoundError
from ..core.logging_config import get_logger
from ..domain.value_objects import UserRole

logger = get_logger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

# Fields never returned to callers
_PRIVATE_FIELDS = ("password_hash",)


def public_user(user: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in user.items() if k not in _PRIVATE_FIELDS}


class UserService:
    def __init__(self, db: DatabaseInterface):
        self.db = db

    async def create_user(
        self,
        username: str,
        password: str,
        name: str,
        role: str = UserRole.USER.value,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        loan_access: Optional[Iterable[str]] = None
    ) -> Dict[str, Any]:
        """
        Create a user.

        Raises:
            ValueError: On an empty username or password, or an unknown role
            DuplicateUserError: If the username is taken
        """
        normalized = (username or "").strip().lower()
        if not normalized or not password:
            raise ValueError("Username and password are required")
        role_value = UserRole(role).value

        if await self.db.get_user_by_username(normalized):
            raise DuplicateUserError(f"Username '{normalized}' already exists")

        try:
            user = await self.db.create_user({
                "username": normalized,
                "password_hash": pwd_context.hash(password),
                "name": name,
                "role": role_value,
                "email": email,
                "phone": phone,
                "loan_access": sorted(set(loan_access or [])),
            })
        except DuplicateKeyError as e:
            raise DuplicateUserError(f"Username '{normalized}' already exists") from e

        logger.info(f"Created {role_value} user {normalized}")
        return public_user(user)

    async def get_user(self, username: str) -> Dict[str, Any]:
        user = await self.db.get_user_by_username((username or "").strip().lower())
        if not user:
            raise UserNotFoundError(f"User '{username}' not found")
        return public_user(user)

    async def list_users(self, role: Optional[str] = None) -> List[Dict[str, Any]]:
        users = await self.db.find_users(role=role)
        return [public_user(user) for user in users]

    async def delete_user(self, user_id: str) -> None:
        if not await self.db.delete_user(user_id):
            raise UserNotFoundError(f"User '{user_id}' not found")
        logger.info(f"Deleted user {user_id}")

    async def verify_password(self, username: str, password: str) -> bool:
        user = await self.db.get_user_by_username((username or "").strip().lower())
        if not user:
            return False
        return pwd_context.verify(password, user["password_hash"])

    async def set_loan_access(self, username: str, loan_ids: Iterable[str]) -> Dict[str, Any]:
        """Replace the loan ids a user may view."""
        user = await self.db.get_user_by_username((username or "").strip().lower())
        if not user:
            raise UserNotFoundError(f"User '{username}' not found")
        updated = await self.db.update_user(user["id"], {"loan_access": sorted(set(loan_ids))})
        return public_user(updated)

    async def can_access_loan(self, username: str, loan_id: str) -> bool:
        """Admins see every loan; other users only those in their loan access list."""
        user = await self.db.get_user_by_username((username or "").strip().lower())
        if not user:
            raise UserNotFoundError(f"User '{username}' not found")
        if user.get("role") == UserRole.ADMIN.value:
            return True
        return loan_id in (user.get("loan_access") or [])

    async def resolve_uploader(self, username: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """
        User an upload is attributed to.

        The named user when given, otherwise the first admin, otherwise None.

        Raises:
            UserNotFoundError: If a username is given but unknown
        """
        if username:
            return await self.get_user(username)
        admins = await self.db.find_users(role=UserRole.ADMIN.value)
        return public_user(admins[0]) if admins else None
