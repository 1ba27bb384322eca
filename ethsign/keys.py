#
# (c) Copyright 2022 by Coinkite Inc. This file is covered by license found in COPYING-CC.
#
# keys.py
#
# Key pairs on secp256k1. The private scalar lives in a bytearray we own, so it can be
# wiped once the caller is done with it. Use as a context manager:
#
#   with KeyPair.from_hex(hex_key) as kp:
#       ... kp.secret, kp.address ...
#
# and the scalar is zeroed on the way out, however you leave.
#
import logging
from .constants import PRIVKEY_SIZE
from .compat import CT_pick_keypair, CT_priv_to_pubkey
from .exceptions import InvalidScalar
from .utils import B2A, pubkey_to_address

log = logging.getLogger(__name__)

class KeyPair:

    def __init__(self, secret, pubkey=None):
        # - takes a copy of secret, caller should wipe their own
        # - pubkey can be provided when caller already has it (saves a point mult)
        self._secret = bytearray(secret)

        if pubkey is None:
            if len(self._secret) != PRIVKEY_SIZE:
                self.zeroize()
                raise InvalidScalar("Error reconstructing private key from input hex")
            try:
                pubkey = CT_priv_to_pubkey(bytes(self._secret))
            except ValueError as exc:
                # zero, or not less than curve order
                self.zeroize()
                log.error("Error reconstructing private key from input hex: %s", exc)
                raise InvalidScalar("Error reconstructing private key from input hex")

        self.public_key = pubkey

    @classmethod
    def generate(cls):
        # fresh random key
        secret, pubkey = CT_pick_keypair()
        return cls(secret, pubkey)

    @classmethod
    def from_scalar(cls, raw):
        # raw 32-byte big-endian scalar
        return cls(raw)

    @classmethod
    def from_hex(cls, hex_key):
        # 64 hex digits, already validated for shape
        buf = bytearray.fromhex(hex_key)
        try:
            return cls(buf)
        finally:
            buf[:] = bytes(len(buf))

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.zeroize()
        return False

    def __repr__(self):
        # never show the secret
        st = 'wiped' if self.is_zeroized else 'live'
        return '<%s %s %s>' % (self.__class__.__name__, self.address, st)

    def zeroize(self):
        # overwrite private scalar with zeros; safe to call more than once
        for i in range(len(self._secret)):
            self._secret[i] = 0
        self._wiped = True

    @property
    def is_zeroized(self):
        return getattr(self, '_wiped', False)

    @property
    def secret(self) -> bytes:
        if self.is_zeroized:
            raise ValueError("private key already zeroized")
        return bytes(self._secret)

    @property
    def private_hex(self) -> str:
        # 64 hex digits, no 0x prefix
        return B2A(self.secret)

    @property
    def public_hex(self) -> str:
        # 128 hex digits: x + y, prefix byte dropped
        return B2A(self.public_key[1:])

    @property
    def address(self) -> str:
        return pubkey_to_address(self.public_key)

# EOF
