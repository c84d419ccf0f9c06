"""
Swap Path — Кодек пути обмена в стиле Uniswap v3

Упакованный путь чередует 20-байтовые адреса токенов и 3-байтовые fee пулов:
token0 - fee0 - token1 - fee1 - token2

DCA-роутер обменивает прибыль по такому пути, поэтому путь проверяется
один раз при конфигурации роутера.
"""

from typing import Final

from eth_utils import is_hex_address, to_checksum_address

from metavault.core.errors import VaultValidationError

# Длина адреса в пути
ADDRESS_SIZE: Final[int] = 20

# Длина fee в пути
FEE_SIZE: Final[int] = 3

# Минимальный путь: один hop
MIN_PATH_SIZE: Final[int] = ADDRESS_SIZE * 2 + FEE_SIZE

# Максимальная кодируемая fee
MAX_FEE: Final[int] = 2 ** (FEE_SIZE * 8) - 1


def encode_path(tokens: list[str], fees: list[int]) -> bytes:
    """
    Кодирование пути для exact input обмена.

    Args:
        tokens: Адреса токенов в порядке обмена
        fees: Fee пулов, по одной на hop

    Returns:
        Упакованный путь

    Raises:
        VaultValidationError: Если адрес или fee невалидны, либо длины не согласованы
    """
    if len(tokens) < 2 or len(fees) != len(tokens) - 1:
        raise VaultValidationError("Invalid swap path")

    encoded = b""
    for index, token in enumerate(tokens):
        if not is_hex_address(token):
            raise VaultValidationError("Invalid swap path")
        encoded += bytes.fromhex(token[2:])
        if index < len(fees):
            fee = fees[index]
            if not 0 <= fee <= MAX_FEE:
                raise VaultValidationError("Invalid swap path")
            encoded += fee.to_bytes(FEE_SIZE, "big")

    return encoded


def decode_path(path: bytes) -> tuple[list[str], list[int]]:
    """
    Декодирование пути в checksum-адреса и fees.

    Raises:
        VaultValidationError: Если длина не равна 20 + n * 23 для n >= 1
    """
    if len(path) < MIN_PATH_SIZE or (len(path) - ADDRESS_SIZE) % (ADDRESS_SIZE + FEE_SIZE) != 0:
        raise VaultValidationError("Invalid swap path")

    tokens = []
    fees = []
    pos = 0
    while True:
        tokens.append(to_checksum_address("0x" + path[pos : pos + ADDRESS_SIZE].hex()))
        pos += ADDRESS_SIZE
        if pos == len(path):
            break
        fees.append(int.from_bytes(path[pos : pos + FEE_SIZE], "big"))
        pos += FEE_SIZE

    return tokens, fees


def validate_swap_path(path: bytes, token_in: str, token_out: str) -> tuple[list[str], list[int]]:
    """
    Проверка, что путь начинается с token_in и заканчивается token_out.

    Returns:
        Декодированные (tokens, fees)
    """
    tokens, fees = decode_path(path)
    if tokens[0].lower() != token_in.lower() or tokens[-1].lower() != token_out.lower():
        raise VaultValidationError("Invalid swap path")
    return tokens, fees
