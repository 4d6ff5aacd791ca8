"""Principal and account directory."""

from decimal import Decimal
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rewards.logging_config import get_logger
from rewards.models.account import Account, Principal
from rewards.utils.errors import AccountNotFoundError, ValidationError

logger = get_logger(__name__)


def normalize_email(email: str) -> str:
    email = (email or "").strip().lower()
    if "@" not in email:
        raise ValidationError("Invalid email address", details={"email": email})
    return email


class AccountDirectory:
    """Resolves principals to their accounts."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def register(self, email: str, name: str, is_manager: bool = False) -> Principal:
        """Create a principal together with its zero-balance account."""
        principal = Principal(
            id=str(uuid4()),
            email=normalize_email(email),
            name=name,
            is_manager=is_manager,
        )
        self.session.add(principal)
        await self.session.flush()
        self.session.add(Account(id=str(uuid4()), principal_id=principal.id, balance=Decimal("0")))
        await self.session.flush()

        logger.info("principal_registered", principal_id=principal.id, is_manager=is_manager)
        return principal

    async def get_principal(self, principal_id: str) -> Principal:
        principal = await self.session.get(Principal, principal_id)
        if principal is None:
            raise AccountNotFoundError(principal_id)
        return principal

    async def find_by_email(self, email: str) -> Principal | None:
        result = await self.session.execute(
            select(Principal).where(Principal.email == normalize_email(email))
        )
        return result.scalar_one_or_none()

    async def get_account(self, principal_id: str) -> Account:
        """Account owned by ``principal_id``.

        Raises:
            AccountNotFoundError: No account for the principal
        """
        result = await self.session.execute(
            select(Account).where(Account.principal_id == principal_id)
        )
        account = result.scalar_one_or_none()
        if account is None:
            raise AccountNotFoundError(principal_id)
        return account

    async def get_or_create_account(self, principal_id: str) -> Account:
        result = await self.session.execute(
            select(Account).where(Account.principal_id == principal_id)
        )
        account = result.scalar_one_or_none()
        if account is None:
            await self.get_principal(principal_id)
            account = Account(id=str(uuid4()), principal_id=principal_id, balance=Decimal("0"))
            self.session.add(account)
            await self.session.flush()
        return account
