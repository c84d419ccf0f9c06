"""
Vault Errors — Иерархия исключений мета-хранилищ

Все нарушения предусловий поднимаются синхронно и прерывают операцию целиком.
Сообщения повторяют короткие коды причин ("!keeper", "Exceed cap", ...),
чтобы вызывающая сторона могла их сопоставлять.

Категории:
- AuthorizationError: вызывающий не owner/keeper
- VaultValidationError: нулевой адрес/сумма/cap, несовпадение asset, битый swap path
- VaultStateError: неверный раунд, повторная инициализация, недостаточный баланс
"""


class VaultError(Exception):
    """Базовое исключение для всех ошибок мета-хранилища."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class AuthorizationError(VaultError):
    """Вызывающий аккаунт не имеет прав на операцию (owner/keeper)."""


class VaultValidationError(VaultError, ValueError):
    """Невалидный аргумент: ноль там, где нужен положительный, несовпадение asset."""


class VaultStateError(VaultError):
    """Операция недопустима в текущем состоянии хранилища."""


class ReentrancyError(VaultStateError):
    """Повторный вход в защищённую операцию до её завершения."""

    def __init__(self, reason: str = "ReentrancyGuard: reentrant call"):
        super().__init__(reason)


def require(condition: bool, reason: str, error: type[VaultError] = VaultStateError) -> None:
    """
    Проверка предусловия.

    Args:
        condition: Условие, которое должно быть истинным
        reason: Код причины (например, "!amount")
        error: Класс исключения (default: VaultStateError)

    Raises:
        error: Если condition ложно
    """
    if not condition:
        raise error(reason)
