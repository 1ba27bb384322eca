#
# (c) Copyright 2022 by Coinkite Inc. This file is covered by license found in COPYING-CC.
#
# signer.py
#
# Sign 32-byte digests with a stored account, producing what ethers.js
# calls signDigest: 65 bytes r + s + v, with v being 27 or 28.
#
import logging
from .constants import DIGEST_SIZE, SIGNATURE_SIZE, ETH_SIGNATURE_V_OFFSET
from .compat import CT_sign, CT_sig_to_pubkey
from .exceptions import SigningFailed, InvalidScalar
from .keys import KeyPair
from .utils import B2A, pubkey_to_address, hash_message
from .validate import validate_digest_hex

log = logging.getLogger(__name__)

def sign_digest(account, digest) -> str:
    # Returns 0x + 130 hex digits
    if len(digest) != DIGEST_SIZE:
        log.error("Refusing to sign %d-byte digest with %s", len(digest), account.address)
        raise SigningFailed(f"Failed to sign digest with {account.address}: "
                                f"hash is required to be exactly {DIGEST_SIZE} bytes ({len(digest)})")

    try:
        with KeyPair.from_hex(account.private_key) as kp:
            sig = CT_sign(kp.secret, bytes(digest))
    except (InvalidScalar, ValueError) as exc:
        log.error("Failed to sign digest with %s: %s", account.address, exc)
        raise SigningFailed(f"Failed to sign digest with {account.address}: {exc}")

    assert len(sig) == SIGNATURE_SIZE
    rec_id = sig[64]

    # see Ethereum yellow paper: v = rec_id + 27
    return '0x' + B2A(sig[0:64] + bytes([rec_id + ETH_SIGNATURE_V_OFFSET]))

def sign_message(account, message) -> str:
    # EIP-191 personal message: hash here, then sign the digest
    return sign_digest(account, hash_message(message))

def recover_address(digest, signature) -> str:
    # Which address made this signature? What a verifier would do.
    # - digest: bytes or 0x-hex
    # - signature: bytes or 0x-hex; v may be 0/1 or 27/28
    if isinstance(digest, str):
        digest = validate_digest_hex(digest)
    if isinstance(signature, str):
        signature = validate_digest_hex(signature)

    if len(signature) != SIGNATURE_SIZE:
        raise ValueError(f"Signature must be {SIGNATURE_SIZE} bytes, got {len(signature)}")

    v = signature[64]
    if v >= ETH_SIGNATURE_V_OFFSET:
        v -= ETH_SIGNATURE_V_OFFSET
    if v not in (0, 1):
        raise ValueError(f"Unexpected recovery id: {signature[64]}")

    pubkey = CT_sig_to_pubkey(digest, signature[0:64] + bytes([v]))

    return pubkey_to_address(pubkey)

# EOF
