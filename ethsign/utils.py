# (c) Copyright 2022 by Coinkite Inc. This file is covered by license found in COPYING-CC.
#
from binascii import b2a_hex
from .constants import *
from .compat import keccak256

# show bytes as hex in a string
B2A = lambda x: b2a_hex(x).decode('ascii')

def force_bytes(foo):
    # convert strings to bytes where needed
    return foo.encode('utf-8') if isinstance(foo, str) else foo

def pubkey_to_address(pubkey):
    # make the text string used as an account address
    # - keccak256 over x + y (the 0x04 prefix byte is not hashed)
    # - last 20 bytes of that
    # - always lowercase hex, with 0x prefix
    if len(pubkey) == PUBKEY_SIZE:
        assert pubkey[0] == 0x04, 'expecting uncompressed pubkey'
        pubkey = pubkey[1:]

    if len(pubkey) != PUBKEY_SIZE - 1:
        raise ValueError(f"Expected 64 or 65 byte public key, got {len(pubkey)}")

    return '0x' + B2A(keccak256(pubkey)[-ADDRESS_SIZE:])

def to_checksum_address(address):
    # EIP-55: mixed-case rendering of an address, for humans
    addr = address.lower()
    if addr.startswith('0x'):
        addr = addr[2:]
    assert len(addr) == ADDRESS_SIZE * 2

    md = B2A(keccak256(addr.encode('ascii')))

    return '0x' + ''.join(ch.upper() if int(md[i], 16) >= 8 else ch
                                for i, ch in enumerate(addr))

def hash_message(message):
    # EIP-191 version 0x45 ("personal_sign"): digest of a text message, ready for signing
    message = force_bytes(message)
    return keccak256(ETH_MESSAGE_PREFIX + str(len(message)).encode('ascii') + message)

# EOF
