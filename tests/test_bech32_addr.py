from __future__ import annotations

from typing import Callable

import pytest

from govdrop.bech32_addr import convert_bech32, decode_address, encode_address
from govdrop.errors import AddressConversionError


def test_convert_keeps_the_key_bytes(addr: Callable[..., str]) -> None:
    src = addr("cosmos", 7)
    out = convert_bech32(src, "cosmos", "atone")
    assert out.startswith("atone1")
    assert out == addr("atone", 7)
    assert decode_address(out, "atone") == bytes([7]) * 20
    assert convert_bech32(out, "atone", "cosmos") == src


def test_32_byte_addresses_are_accepted(addr: Callable[..., str]) -> None:
    src = addr("cosmos", 3, 32)
    assert decode_address(src, "cosmos") == bytes([3]) * 32
    assert encode_address(bytes([3]) * 32, "govgen") == addr("govgen", 3, 32)


def test_wrong_prefix(addr: Callable[..., str]) -> None:
    with pytest.raises(AddressConversionError) as ei:
        convert_bech32(addr("cosmosvaloper", 1), "cosmos", "atone")
    assert ei.value.code == "invalid_address"
    assert ei.value.reason == "unexpected_prefix"
    assert ei.value.details["got"] == "cosmosvaloper"


def test_invalid_addresses(addr: Callable[..., str]) -> None:
    good = addr("cosmos", 9)
    broken = good[:-1] + ("q" if good[-1] != "q" else "p")

    for bad in ("", "not-an-address", broken):
        with pytest.raises(AddressConversionError) as ei:
            decode_address(bad, "cosmos")
        assert ei.value.reason == "bech32_decode_failed"

    with pytest.raises(AddressConversionError) as ei:
        decode_address(addr("cosmos", 9, 10), "cosmos")
    assert ei.value.reason == "bad_payload_length"
