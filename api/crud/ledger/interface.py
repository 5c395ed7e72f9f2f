from __future__ import annotations
from abc import ABC, abstractmethod

class LedgerInterface(ABC):
    @abstractmethod
    async def get_balance():
        pass

    @abstractmethod
    async def record_transaction():
        pass

    @abstractmethod
    async def unlock_coins():
        pass

    @abstractmethod
    async def list_transactions():
        pass

    @abstractmethod
    async def derive_balance():
        pass
