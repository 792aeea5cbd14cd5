from django.db import connection, connections, transaction

from clinica_core.core.domain.repositories.unit_of_work import UnitOfWork


class DjangoUnitOfWork(UnitOfWork):
    """Unidade de trabalho sobre ``transaction.atomic`` do banco padrão."""

    def atomic(self):
        return transaction.atomic()

    def allows_parallel(self) -> bool:
        # Threads abrem conexões próprias e não enxergam uma transação já aberta.
        return not connection.in_atomic_block

    def release(self) -> None:
        connections.close_all()
