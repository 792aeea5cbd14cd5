from abc import ABC, abstractmethod
from contextlib import AbstractContextManager


class UnitOfWork(ABC):
    """Fronteira transacional usada pelos handlers de escrita."""

    @abstractmethod
    def atomic(self) -> AbstractContextManager:
        """Contexto transacional: tudo ou nada."""
        ...

    def allows_parallel(self) -> bool:
        """Se operações independentes podem rodar em threads separadas."""
        return True

    def release(self) -> None:
        """Libera recursos presos à thread atual (ex.: conexões)."""
        return None
