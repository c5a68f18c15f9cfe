"""Tests for content fingerprinting."""

from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from teleporter.exceptions import ChecksumError
from teleporter.services.checksum_service import calculate_checksum


class TestCalculateChecksum:
    def test_known_digest(self) -> None:
        assert (
            calculate_checksum(b"test data")
            == "916f0027a575074ce72a331777c3478d6513f786a591bd892da1a577bf2335f9"
        )

    def test_hello_world(self) -> None:
        assert (
            calculate_checksum(b"hello world")
            == "b94d27b9934d3e08a52e52d7da7dabfac484efe37a5380ee9088f7ace2efcde9"
        )

    def test_empty_input(self) -> None:
        assert (
            calculate_checksum(b"")
            == "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
        )

    def test_different_content_differs(self) -> None:
        assert calculate_checksum(b"old content") != calculate_checksum(b"new content")

    def test_accepts_bytearray(self) -> None:
        assert calculate_checksum(bytearray(b"test data")) == calculate_checksum(b"test data")

    def test_rejects_text(self) -> None:
        with pytest.raises(ChecksumError, match="must be bytes"):
            calculate_checksum("test data")  # type: ignore[arg-type]


class TestChecksumProperties:
    @given(st.binary(max_size=512))
    def test_deterministic_lowercase_hex(self, data: bytes) -> None:
        first = calculate_checksum(data)
        assert first == calculate_checksum(data)
        assert len(first) == 64
        assert first == first.lower()
        int(first, 16)
