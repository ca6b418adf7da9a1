"""Cryptographically sourced randomness and seed commitments.

Nothing in this package may use the ``random`` module: every outcome is drawn
from ``secrets`` (single-shot games) or derived from an HMAC of a secret
server seed (multiplayer rounds).
"""
import hashlib
import hmac
import secrets


def random_int(low: int, high: int) -> int:
    """Uniform integer in [low, high)."""
    if high <= low:
        raise ValueError(f"empty range [{low}, {high})")
    return low + secrets.randbelow(high - low)


def random_float() -> float:
    return random_int(0, 1000000) / 1000000


def generate_seed() -> str:
    return secrets.token_hex(32)


def hash_seed(seed: str) -> str:
    return hashlib.sha256(seed.encode('utf-8')).hexdigest()


def hmac_hex(seed: str, message) -> str:
    return hmac.new(seed.encode('utf-8'), str(message).encode('utf-8'), hashlib.sha256).hexdigest()


def round_commitment(seed: str, round_number: int) -> str:
    """Hash published before a round opens; verifiable once the seed is revealed."""
    return hash_seed(f"{seed}:{round_number}")


def leading_int(hex_digest: str, hex_chars: int = 8) -> int:
    return int(hex_digest[:hex_chars], 16)
