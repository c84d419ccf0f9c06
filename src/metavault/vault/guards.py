"""
Guards — Атомарность и защита от повторного входа

Операции хранилища либо выполняются целиком, либо не оставляют локальных
эффектов:
- transaction: снапшот локального состояния участников и откат при исключении
- nonreentrant: повторный вход в защищённую операцию запрещён

Участник транзакции реализует checkpoint() -> saved и rollback(saved).
Состояние внешних коллабораторов не откатывается: предусловия хранилища
проверяются до первого внешнего вызова.
"""

import functools
import logging
from contextlib import contextmanager
from typing import Any, Iterator, Protocol

from metavault.core.errors import ReentrancyError

logger = logging.getLogger(__name__)


class Checkpointable(Protocol):
    def checkpoint(self) -> Any: ...

    def rollback(self, saved: Any) -> None: ...


@contextmanager
def transaction(*participants: Checkpointable) -> Iterator[None]:
    """
    Откат локального состояния участников, если тело блока бросает исключение.

    Исключение пробрасывается дальше без изменений.
    """
    saved = [participant.checkpoint() for participant in participants]
    try:
        yield
    except Exception:
        for participant, state in zip(participants, saved):
            participant.rollback(state)
        raise


def nonreentrant(method):
    """
    Защита метода хранилища от повторного входа и частичного применения.

    Хранилище должно иметь атрибут _entered и метод _participants(),
    возвращающий участников транзакции.
    """

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        if self._entered:
            logger.warning("Reentrant call to %s rejected", method.__name__)
            raise ReentrancyError()

        self._entered = True
        try:
            with transaction(*self._participants()):
                return method(self, *args, **kwargs)
        finally:
            self._entered = False

    return wrapper
