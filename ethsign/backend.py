#
# (c) Copyright 2022 by Coinkite Inc. This file is covered by license found in COPYING-CC.
#
# backend.py
#
# Map requests (operation + path + fields) onto the account store and signer.
#
#   list            accounts                        => keys
#   create/update   accounts                        privateKey? => address
#   read            accounts/ADDR                   => address (or None)
#   delete          accounts/ADDR                   => None
#   read            export/accounts/ADDR            => address, privateKey
#   create/update   accounts/ADDR/sign_digest       hash => signature
#
# Fields are parsed into a typed request for each operation before any work is done.
#
import re, logging
from dataclasses import dataclass
from typing import Optional

from .accounts import AccountStore
from .exceptions import UnsupportedOperation, MalformedPrivateKey, MalformedDigest
from .signer import sign_digest
from .validate import validate_address, validate_private_key_hex, validate_digest_hex

log = logging.getLogger(__name__)

OPERATIONS = { 'list', 'create', 'update', 'read', 'delete' }

@dataclass(frozen=True)
class CreateAccountRequest:
    private_key: Optional[str] = None       # None => generate

    def __repr__(self):
        return '<CreateAccountRequest %s>' % ('import' if self.private_key else 'new')

    @classmethod
    def parse(cls, name, data):
        pk = data.get('privateKey', None)
        if pk is not None and not isinstance(pk, str):
            raise MalformedPrivateKey("privateKey must be a 32-byte hexadecimal string")
        return cls(private_key=validate_private_key_hex(pk))

@dataclass(frozen=True)
class AccountRequest:
    address: str

    @classmethod
    def parse(cls, name, data):
        return cls(address=validate_address(name))

@dataclass(frozen=True)
class SignDigestRequest:
    address: str
    digest: bytes

    @classmethod
    def parse(cls, name, data):
        address = validate_address(name)
        digest = data.get('hash', None)
        if digest is None:
            raise MalformedDigest("hash field is required")
        return cls(address=address, digest=validate_digest_hex(digest))

@dataclass(frozen=True)
class ListRequest:
    @classmethod
    def parse(cls, name, data):
        return cls()

# (path pattern, request type, { operation: method name })
ROUTES = [
    (r'accounts', ListRequest, dict(list='path_list')),
    (r'accounts', CreateAccountRequest, dict(create='path_create', update='path_create')),
    (r'accounts/(?P<name>[^/]+)', AccountRequest, dict(read='path_read', delete='path_delete')),
    (r'export/accounts/(?P<name>[^/]+)', AccountRequest, dict(read='path_export')),
    (r'accounts/(?P<name>[^/]+)/sign_digest', SignDigestRequest,
                                    dict(create='path_sign_digest', update='path_sign_digest')),
]

class Backend:
    #
    # Routes requests. Holds the one account store for this process.
    #
    def __init__(self, store: AccountStore):
        self.store = store
        self.routes = [(re.compile(pat), req_cls, ops) for pat, req_cls, ops in ROUTES]

    def __repr__(self):
        return '<%s %r>' % (self.__class__.__name__, self.store)

    def route(self, operation, path):
        # find method and request type for path; raise if nothing fits
        if operation not in OPERATIONS:
            raise UnsupportedOperation(f"unknown operation: {operation}", 405)

        path = path.strip('/')
        found_path = False
        for pat, req_cls, ops in self.routes:
            m = pat.fullmatch(path)
            if not m:
                continue
            found_path = True
            if operation in ops:
                return getattr(self, ops[operation]), req_cls, m.groupdict().get('name')

        if found_path:
            raise UnsupportedOperation(f"{operation} not supported on: {path}", 405)

        raise UnsupportedOperation(f"unsupported path: {path}", 404)

    def handle_request(self, operation, path, data=None):
        # Returns response fields as a dict, or None for an empty response.
        method, req_cls, name = self.route(operation, path)

        req = req_cls.parse(name, dict(data or {}))
        log.debug("%s %s => %r", operation, path, req)

        return method(req)

    #
    # Handlers, one per route+operation
    #
    def path_list(self, req):
        return dict(keys=self.store.list())

    def path_create(self, req):
        return dict(address=self.store.create(req.private_key))

    def path_read(self, req):
        account = self.store.get(req.address)
        if account is None:
            return None
        return dict(address=account.address)

    def path_export(self, req):
        account = self.store.export(req.address)
        return dict(address=account.address, privateKey=account.private_key)

    def path_delete(self, req):
        self.store.delete(req.address)
        return None

    def path_sign_digest(self, req):
        account = self.store.export(req.address)
        return dict(signature=sign_digest(account, req.digest))

# EOF
