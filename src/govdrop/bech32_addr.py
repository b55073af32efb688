# src/govdrop/bech32_addr.py
from __future__ import annotations

from bech32 import bech32_decode, bech32_encode, convertbits

from govdrop.errors import AddressConversionError

# Account addresses are 20 bytes; module/ICA accounts use 32-byte hashes.
_VALID_ADDR_LENGTHS = (20, 32)


def decode_address(addr: str, prefix: str) -> bytes:
    """Return the raw address bytes of a bech32 `addr` expected under `prefix`."""
    hrp, data = bech32_decode(str(addr or "").strip())
    if hrp is None or data is None:
        raise AddressConversionError("invalid_address", "bech32_decode_failed", {"address": addr})
    if hrp != prefix:
        raise AddressConversionError(
            "invalid_address",
            "unexpected_prefix",
            {"address": addr, "expected": prefix, "got": hrp},
        )
    raw = convertbits(data, 5, 8, False)
    if raw is None or len(raw) not in _VALID_ADDR_LENGTHS:
        raise AddressConversionError("invalid_address", "bad_payload_length", {"address": addr})
    return bytes(raw)


def encode_address(raw: bytes, prefix: str) -> str:
    data = convertbits(list(raw), 8, 5, True)
    if data is None:
        raise AddressConversionError("invalid_address", "convertbits_failed", {"prefix": prefix})
    out = bech32_encode(prefix, data)
    if not out:
        raise AddressConversionError("invalid_address", "bech32_encode_failed", {"prefix": prefix})
    return out


def convert_bech32(addr: str, src: str, dst: str) -> str:
    """Derive `addr` from the `src` bech32 prefix to the `dst` one (same key bytes)."""
    return encode_address(decode_address(addr, src), dst)
