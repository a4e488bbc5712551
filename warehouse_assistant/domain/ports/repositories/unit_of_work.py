"""Transaction boundary shared by the repositories of one request."""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager


class UnitOfWorkPort(ABC):
    @abstractmethod
    def atomic(self) -> AbstractAsyncContextManager[None]:
        """Commit everything done inside the block, or roll all of it back."""

    @abstractmethod
    async def commit(self) -> None: ...

    @abstractmethod
    async def rollback(self) -> None: ...
