"""Base58 encoding with the Bitcoin alphabet, as used for Solana keys and signatures."""

from __future__ import annotations

ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_INDEX = {char: value for value, char in enumerate(ALPHABET)}

PUBKEY_LENGTH = 32


def b58encode(data: bytes) -> str:
    """Encode bytes as a base58 string."""
    data = bytes(data)
    leading_zeros = len(data) - len(data.lstrip(b"\0"))
    number = int.from_bytes(data, "big")
    digits = []
    while number:
        number, remainder = divmod(number, 58)
        digits.append(ALPHABET[remainder])
    return "1" * leading_zeros + "".join(reversed(digits))


def b58decode(text: str) -> bytes:
    """Decode a base58 string; raises ValueError on a character outside the alphabet."""
    number = 0
    for char in text:
        try:
            number = number * 58 + _INDEX[char]
        except KeyError:
            raise ValueError(f"invalid base58 character {char!r}") from None
    leading_ones = len(text) - len(text.lstrip("1"))
    body = number.to_bytes((number.bit_length() + 7) // 8, "big") if number else b""
    return b"\0" * leading_ones + body


def is_valid_pubkey(text: object) -> bool:
    """Return True if text is a base58 string that decodes to a 32-byte key."""
    if not isinstance(text, str) or not text:
        return False
    try:
        return len(b58decode(text)) == PUBKEY_LENGTH
    except ValueError:
        return False