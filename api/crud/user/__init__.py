import uuid
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from .interface import UserInterface
from .schema import BankAccountCreate
from api.errors import NotFound
from api.models.user import BankAccount, User, UserRole


class UserService(UserInterface):
    """Lookups against the user/role directory. Identity itself is asserted upstream."""

    async def get_user(self, user_id: uuid.UUID, session: AsyncSession) -> User:
        user = await session.get(User, user_id)
        if not user:
            raise NotFound("User not found")
        return user

    async def get_user_role(self, user_id: uuid.UUID, session: AsyncSession) -> UserRole | None:
        res = await session.execute(select(User.role).where(User.id == user_id))
        return res.scalar_one_or_none()

    async def get_seller(self, seller_id: uuid.UUID, session: AsyncSession) -> User:
        user = await session.get(User, seller_id)
        if not user or user.role != UserRole.seller:
            raise NotFound("Seller not found")
        return user

    async def list_bank_accounts(self, seller_id: uuid.UUID, session: AsyncSession) -> list[BankAccount]:
        res = await session.execute(
            select(BankAccount)
            .where(BankAccount.seller_id == seller_id)
            .order_by(BankAccount.is_default.desc(), BankAccount.created_at.asc())
        )
        return list(res.scalars().all())

    async def get_bank_account(self, seller_id: uuid.UUID, account_id: uuid.UUID, session: AsyncSession) -> BankAccount | None:
        res = await session.execute(
            select(BankAccount).where(BankAccount.id == account_id, BankAccount.seller_id == seller_id)
        )
        return res.scalar_one_or_none()

    async def add_bank_account(self, seller_id: uuid.UUID, dto: BankAccountCreate, session: AsyncSession) -> BankAccount:
        if dto.is_default:
            # only one default account per seller
            await session.execute(
                update(BankAccount).where(BankAccount.seller_id == seller_id).values(is_default=False)
            )
        account = BankAccount(seller_id=seller_id, **dto.model_dump())
        session.add(account)
        await session.commit()
        await session.refresh(account)
        return account
