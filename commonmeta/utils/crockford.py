"""Crockford base32 codec with ISO 7064 mod 97-10 checksums.

Used to synthesize DOI suffixes (``10.59350/f9zqn-sf065``), to validate ROR
identifiers and InvenioRDM record ids. The alphabet drops the visually
ambiguous letters i, l, o and u.

    encode(526124770784, split_every=5, length=10, checksum=True)  # "f9zqn-sf065"
    generate(length=10, split_every=5, checksum=True)  # e.g. "h0bmg-2c531"
"""

import secrets

from commonmeta.core.exceptions import ChecksumMismatchError, InvalidIdentifierError

ENCODING_CHARS = "0123456789abcdefghjkmnpqrstvwxyz"
CHECKSUM_LENGTH = 2


def generate_checksum(number: int) -> int:
    """ISO 7064 mod 97-10 checksum, in the range 1..98."""
    return 97 - ((100 * number) % 97) + 1


def validate(number: int, checksum: int) -> bool:
    return generate_checksum(number) == checksum


def _split(encoded: str, split_every: int) -> str:
    if split_every <= 0:
        return encoded
    return "-".join(
        encoded[i : i + split_every] for i in range(0, len(encoded), split_every)
    )


def encode(
    number: int, split_every: int = 0, length: int = 0, checksum: bool = False
) -> str:
    """Encode a non-negative integer.

    Args:
        number: Value to encode
        split_every: Insert "-" every n characters (0 disables)
        length: Total length before splitting, including the checksum;
            the base32 part is left-padded with "0"
        checksum: Append the two-digit checksum

    Returns:
        Encoded string
    """
    if number < 0:
        raise ValueError(f"Cannot encode negative number {number}")
    encoded = ""
    remainder = number
    while remainder > 0:
        remainder, digit = divmod(remainder, 32)
        encoded = ENCODING_CHARS[digit] + encoded
    encoded = encoded or "0"

    if checksum and length > CHECKSUM_LENGTH:
        length -= CHECKSUM_LENGTH
    if length > 0:
        encoded = encoded.rjust(length, "0")
    if checksum:
        encoded += f"{generate_checksum(number):02d}"
    return _split(encoded, split_every)


def generate(length: int = 10, split_every: int = 0, checksum: bool = False) -> str:
    """Generate a random identifier of `length` characters (before splitting).

    Raises:
        ValueError: If checksum is requested and length < 3
    """
    if checksum and length < 3:
        raise ValueError("Invalid length, must be >= 3 if checksum enabled")
    digits = length - CHECKSUM_LENGTH if checksum else length
    number = secrets.randbelow(32**digits)
    return encode(number, split_every, length, checksum)


def normalize(encoded: str) -> str:
    """Lowercase, strip hyphens, map i/l to 1 and o to 0."""
    return (
        encoded.lower()
        .replace("-", "")
        .replace("i", "1")
        .replace("l", "1")
        .replace("o", "0")
    )


def decode(encoded: str, checksum: bool = False) -> int:
    """Decode an encoded string back to its integer value.

    Raises:
        InvalidIdentifierError: Invalid character or input too short
        ChecksumMismatchError: Checksum does not match
    """
    encoded = encoded.replace("-", "").lower()
    expected = None
    if checksum:
        if len(encoded) < CHECKSUM_LENGTH + 1:
            raise InvalidIdentifierError(f"Encoded value too short: {encoded}")
        suffix = encoded[-CHECKSUM_LENGTH:]
        if not suffix.isdigit():
            raise InvalidIdentifierError(f"Invalid checksum: {suffix}")
        expected = int(suffix)
        encoded = encoded[:-CHECKSUM_LENGTH]
    if not encoded:
        raise InvalidIdentifierError("Empty encoded value")

    number = 0
    for char in encoded:
        position = ENCODING_CHARS.find(char)
        if position == -1:
            raise InvalidIdentifierError(f"Invalid character: {char}")
        number = number * 32 + position

    if expected is not None and not validate(number, expected):
        raise ChecksumMismatchError(f"Checksum mismatch: {expected:02d}")
    return number
