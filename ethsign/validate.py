#
# (c) Copyright 2022 by Coinkite Inc. This file is covered by license found in COPYING-CC.
#
# Checks for untrusted input: addresses, private keys and digests, all as text.
#
import re, logging
from .constants import ADDRESS_PATTERN, PRIVKEY_PATTERN
from .exceptions import MalformedAddress, MalformedPrivateKey, MalformedDigest

log = logging.getLogger(__name__)

_address_re = re.compile(ADDRESS_PATTERN)
_privkey_re = re.compile(PRIVKEY_PATTERN)
_hex_re = re.compile(r'[0-9a-fA-F]*')

def validate_address(address):
    # Returns address with 0x prefix, and lowercase so it always
    # matches the storage path picked when the account was created.
    if not isinstance(address, str) or not _address_re.fullmatch(address):
        log.error("Malformed account address: %r", address)
        raise MalformedAddress("Failed to retrieve the account, malformatted account address")

    if address[0:2] != '0x':
        address = '0x' + address

    return address.lower()

def validate_private_key_hex(private_key):
    # Returns 64 hex digits, lowercase, or None if we should pick a new key.
    # - takes the last 64 hex digits at end of the string, so 0x prefix
    #   (or anything else in front) is ignored
    if not private_key:
        return None

    m = _privkey_re.search(private_key) if isinstance(private_key, str) else None
    if not m:
        # do not log the value; it might be most of a real key
        log.error("Input private key did not parse successfully")
        raise MalformedPrivateKey("privateKey must be a 32-byte hexadecimal string")

    return m.group(0).lower()

def validate_digest_hex(digest):
    # 0x-prefixed hex, even number of digits. Any length.
    if not isinstance(digest, str) or not digest:
        raise MalformedDigest("empty hex string")
    if digest[0:2] not in ('0x', '0X'):
        raise MalformedDigest("hex string without 0x prefix")

    body = digest[2:]
    if not _hex_re.fullmatch(body):
        raise MalformedDigest("invalid hex string")
    if len(body) % 2:
        raise MalformedDigest("hex string of odd length")

    return bytes.fromhex(body)

# EOF
