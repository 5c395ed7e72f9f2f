from __future__ import annotations
from abc import ABC, abstractmethod

class UserInterface(ABC):
    @abstractmethod
    async def get_user():
        pass

    @abstractmethod
    async def get_user_role():
        pass

    @abstractmethod
    async def get_seller():
        pass

    @abstractmethod
    async def list_bank_accounts():
        pass

    @abstractmethod
    async def add_bank_account():
        pass
