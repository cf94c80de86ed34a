"""
User service handling account creation.
"""

from eventreg.core.exceptions import ConflictError, ConflictReason, InternalError
from eventreg.core.logging import get_logger
from eventreg.models import User
from eventreg.schemas.user import UserCreate
from eventreg.services.interfaces.store import DuplicateEmail, RegistrationStore, StoreError

logger = get_logger(__name__)


async def create_user(store: RegistrationStore, user_data: UserCreate) -> User:
    """
    Create a user.
    Raises a conflict if the email is taken; the unique index decides.
    """
    try:
        async with store.transaction() as tx:
            user = await tx.add_user(name=user_data.name, email=user_data.email)
    except DuplicateEmail as exc:
        logger.warning("user_create_failed", reason="email_exists", email=user_data.email)
        raise ConflictError(ConflictReason.EMAIL_TAKEN, "Email already exists") from exc
    except StoreError as exc:
        logger.error("user_create_failed", error=str(exc))
        raise InternalError("User could not be created") from exc

    logger.info("user_created", user_id=user.id, email=user.email)
    return user
