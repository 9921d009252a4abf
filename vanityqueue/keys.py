"""
Tron key generation.

A Tron address is Base58Check(0x41 || last 20 bytes of keccak256(pubkey)),
where pubkey is the 64-byte uncompressed secp256k1 point without the 0x04
marker. This is the hot-path function of every brute-force search thread.
"""

import base58
import coincurve
from Crypto.Hash import keccak

ADDRESS_VERSION = b"\x41"


def address_from_public_key(public_key: bytes) -> str:
    """Derive the base58check address from a 65-byte uncompressed public key."""
    digest = keccak.new(digest_bits=256, data=public_key[1:]).digest()
    return base58.b58encode_check(ADDRESS_VERSION + digest[-20:]).decode("ascii")


def generate_keypair() -> tuple[str, str]:
    """Generate a fresh random keypair.

    Returns:
        (private_key_hex, address)
    """
    private_key = coincurve.PrivateKey()
    public_key = private_key.public_key.format(compressed=False)
    return private_key.secret.hex(), address_from_public_key(public_key)
