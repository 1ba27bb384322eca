#
# (c) Copyright 2022 by Coinkite Inc. This file is covered by license found in COPYING-CC.
#
# Wrappers for crypto libraries. AKA API Cleanup
#
# My standards:
# - pubkeys: 65 bytes, always uncompressed (Ethereum wants x and y)
# - private key: 32 bytes
# - signature: 65 bytes, r + s + rec_id where rec_id is 0 or 1 (not yet offset)
# - no DER, no PEM, no other serializations
# - message digests (for sig/recover) are already digested
# - libsecp256k1 underneath (via coincurve), so signatures are RFC-6979 deterministic
#
# nice docs: <https://ofek.dev/coincurve/api/>
#
from Crypto.Hash import keccak
from coincurve import PrivateKey, PublicKey

__all__ = [ 'keccak256', 'CT_pick_keypair', 'CT_priv_to_pubkey', 'CT_sign', 'CT_sig_to_pubkey' ]

def keccak256(msg):
    # single-shot Keccak-256, the pre-NIST padding: NOT hashlib.sha3_256
    return keccak.new(digest_bits=256, data=msg).digest()

def CT_pick_keypair():
    # Choose pub/private pair, return private key (32 bytes) and uncompressed pubkey
    pk = PrivateKey()
    return pk.secret, pk.public_key.format(compressed=False)

def CT_priv_to_pubkey(priv):
    # raises ValueError for zero, or values >= curve order
    assert len(priv) == 32
    return PrivateKey(priv).public_key.format(compressed=False)

def CT_sign(privkey, msg_digest):
    # returns 65 bytes: r + s + rec_id
    assert len(msg_digest) == 32
    return PrivateKey(privkey).sign_recoverable(msg_digest, hasher=None)

def CT_sig_to_pubkey(msg_digest, sig):
    # returns the uncompressed pubkey (65 bytes) that made the signature
    assert len(sig) == 65
    assert sig[64] in { 0, 1, 2, 3 }
    return PublicKey.from_signature_and_message(sig, msg_digest, hasher=None).format(compressed=False)

# EOF
