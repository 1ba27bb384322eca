#
# (c) Copyright 2022 by Coinkite Inc. This file is covered by license found in COPYING-CC.
#
# Exceptions
#

class VaultError(RuntimeError):
    # base class: all errors carry an HTTP-like status code
    code = 500

    def __init__(self, msg, code=None):
        if code is not None:
            self.code = code
        super().__init__(msg)

    @property
    def kind(self):
        return self.__class__.__name__

class MalformedAddress(VaultError):
    code = 400

class MalformedPrivateKey(VaultError):
    code = 400

class InvalidScalar(VaultError):
    # well-formed hex, but not a usable secp256k1 private key
    code = 400

class MalformedDigest(VaultError):
    code = 400

class AccountNotFound(VaultError):
    code = 404

class StorageFailure(VaultError):
    code = 500

class SigningFailed(VaultError):
    code = 500

class UnsupportedOperation(VaultError):
    code = 404

# for rebuilding the right exception from a wire response
ALL_ERRORS = { cls.__name__: cls for cls in [
    VaultError, MalformedAddress, MalformedPrivateKey, InvalidScalar,
    MalformedDigest, AccountNotFound, StorageFailure, SigningFailed,
    UnsupportedOperation ] }

# EOF
