"""
StakeX Addresses

Account identifiers are Ethereum-style 20-byte hex addresses, normalized to
their EIP-55 checksum form so that ledger and balance lookups are
case-insensitive.
"""

import secrets

import rlp
from eth_utils import is_hex_address, keccak, to_checksum_address

from .exceptions import InvalidAddressError

ZERO_ADDRESS = "0x" + "00" * 20


def normalize_address(address: str) -> str:
    """
    Return the checksum form of *address*.

    Raises:
        InvalidAddressError: if *address* is not a 20-byte hex address
    """
    if not isinstance(address, str) or not is_hex_address(address):
        raise InvalidAddressError(f"Invalid address: {address!r}")
    return to_checksum_address(address)


def generate_contract_address(sender: str, nonce: int) -> str:
    """
    Generate a contract address using CREATE opcode logic.

    Address = keccak256(rlp([sender, nonce]))[-20:]

    Args:
        sender: Deployer address
        nonce: Deployer nonce

    Returns:
        Contract address (checksum format)
    """
    sender_bytes = bytes.fromhex(normalize_address(sender)[2:])
    hash_bytes = keccak(rlp.encode([sender_bytes, nonce]))
    return to_checksum_address("0x" + hash_bytes[-20:].hex())


def random_address() -> str:
    """Random checksum address, used for ad-hoc accounts in simulations."""
    return to_checksum_address("0x" + secrets.token_hex(20))
