"""Tests for the Crockford base32 codec."""

import random
import re

import pytest

from commonmeta.core.exceptions import ChecksumMismatchError, InvalidIdentifierError
from commonmeta.utils import crockford


class TestEncode:
    """Tests for encode()."""

    def test_encode_zero(self) -> None:
        assert crockford.encode(0) == "0"

    def test_encode_small_number(self) -> None:
        """1234 = 1*32^2 + 6*32 + 18."""
        assert crockford.encode(1234) == "16j"

    def test_encode_with_checksum(self) -> None:
        assert crockford.encode(1234, checksum=True) == "16j82"

    def test_encode_pads_and_splits(self) -> None:
        assert crockford.encode(526124770784, split_every=5, length=10, checksum=True) == "f9zqn-sf065"
        assert crockford.encode(1, length=4) == "0001"

    def test_encode_without_checksum_keeps_every_digit(self) -> None:
        """The trailing 65 is encoded data here, not a checksum."""
        assert crockford.encode(538751765283013, 5, 10, False) == "f9zqn-sf065"

    def test_encode_negative_raises(self) -> None:
        with pytest.raises(ValueError):
            crockford.encode(-1)


class TestDecode:
    """Tests for decode()."""

    def test_decode_with_checksum(self) -> None:
        assert crockford.decode("f9zqn-sf065", checksum=True) == 526124770784

    def test_decode_is_case_insensitive(self) -> None:
        assert crockford.decode("16J") == 1234

    def test_decode_checksum_mismatch(self) -> None:
        with pytest.raises(ChecksumMismatchError):
            crockford.decode("16j81", checksum=True)

    def test_decode_invalid_character(self) -> None:
        """The alphabet excludes u."""
        with pytest.raises(InvalidIdentifierError):
            crockford.decode("1u")

    def test_decode_too_short_for_checksum(self) -> None:
        with pytest.raises(InvalidIdentifierError):
            crockford.decode("12", checksum=True)


class TestRoundTrip:
    """decode() inverts encode() for any split and padding."""

    @pytest.mark.parametrize("number", [0, 1, 31, 32, 97, 1234, 2**40] + random.Random(97).sample(range(2**50), 20))
    def test_decode_inverts_encode_with_checksum(self, number) -> None:
        encoded = crockford.encode(number, split_every=4, length=12, checksum=True)
        assert crockford.decode(encoded, checksum=True) == number


class TestGenerate:
    """Tests for generate() and normalize()."""

    def test_generate_shape(self) -> None:
        value = crockford.generate(length=10, split_every=5, checksum=True)
        assert re.fullmatch(r"[0-9a-z]{5}-[0-9a-z]{3}\d{2}", value)

    def test_generate_length_with_split(self) -> None:
        assert len(crockford.generate(10, 5, True)) == 11

    def test_generated_value_decodes(self) -> None:
        value = crockford.generate(length=8, checksum=True)
        number = crockford.decode(value, checksum=True)
        assert crockford.validate(number, int(value[-2:]))

    def test_generate_rejects_short_length_with_checksum(self) -> None:
        with pytest.raises(ValueError):
            crockford.generate(length=2, checksum=True)

    def test_normalize(self) -> None:
        assert crockford.normalize("1O-Il") == "1011"

    def test_checksum_range(self) -> None:
        assert all(1 <= crockford.generate_checksum(n) <= 98 for n in range(0, 500))

    def test_checksum_of_known_number(self) -> None:
        assert crockford.generate_checksum(450320459383) == 85
        assert crockford.validate(450320459383, 85)
        assert not crockford.validate(450320459383, 84)
