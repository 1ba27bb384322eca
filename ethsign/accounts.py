#
# (c) Copyright 2022 by Coinkite Inc. This file is covered by license found in COPYING-CC.
#
# accounts.py
#
# Ethereum accounts: key pairs stored under a path made from their own address.
# Importing the same key twice lands on the same path, so there is never more
# than one record per address. Records are never changed once written.
#
import json, logging
from dataclasses import dataclass, asdict
from typing import List, Optional

from .constants import ACCOUNTS_PREFIX
from .exceptions import AccountNotFound, StorageFailure
from .keys import KeyPair
from .validate import validate_address, validate_private_key_hex

log = logging.getLogger(__name__)

def account_path(address):
    # where we keep an account; address must be normalized already
    return ACCOUNTS_PREFIX + address

@dataclass(frozen=True)
class Account:
    address: str            # 0x + 40 lowercase hex
    private_key: str        # 64 hex, no prefix
    public_key: str         # 128 hex: x + y

    def __repr__(self):
        # keep secrets out of tracebacks and logs
        return f'<Account {self.address}>'

    @classmethod
    def from_keypair(cls, kp):
        return cls(address=kp.address, private_key=kp.private_hex, public_key=kp.public_hex)

    def to_json(self) -> bytes:
        return json.dumps(asdict(self), separators=(',', ':')).encode('utf-8')

    @classmethod
    def from_json(cls, raw, path='?'):
        try:
            d = json.loads(raw)
            return cls(address=d['address'], private_key=d['private_key'],
                            public_key=d['public_key'])
        except (ValueError, KeyError, TypeError):
            log.error("Corrupt account record at: %s", path)
            raise StorageFailure(f"Corrupt account record at: {path}")

class AccountStore:
    #
    # Create, find, export and delete accounts. One of these per process,
    # handed to whatever serves requests.
    #
    def __init__(self, storage):
        self.storage = storage

    def __repr__(self):
        return '<%s on %r>' % (self.__class__.__name__, self.storage)

    def create(self, private_key=None) -> str:
        # Pick a new key, or import the one given (hex). Returns address only.
        key_hex = validate_private_key_hex(private_key)

        kp = KeyPair.generate() if key_hex is None else KeyPair.from_hex(key_hex)
        with kp:
            account = Account.from_keypair(kp)

        path = account_path(account.address)
        try:
            self.storage.put(path, account.to_json())
        except StorageFailure as exc:
            log.error("Failed to save the new account to storage: %s", exc)
            raise

        log.info("Saved account: %s", account.address)

        return account.address

    def list(self) -> List[str]:
        # addresses of all accounts, in storage order
        try:
            return self.storage.list(ACCOUNTS_PREFIX)
        except StorageFailure as exc:
            log.error("Failed to retrieve the list of accounts: %s", exc)
            raise

    def get(self, address) -> Optional[Account]:
        # Account, or None if not (yet) known. Bad address raises.
        address = validate_address(address)
        path = account_path(address)

        log.debug("Retrieving account for address: %s", address)

        try:
            raw = self.storage.get(path)
        except StorageFailure as exc:
            log.error("Failed to retrieve the account by address %s: %s", address, exc)
            raise

        if raw is None:
            return None

        return Account.from_json(raw, path)

    def export(self, address) -> Account:
        # same as get, but caller expects it to be there
        account = self.get(address)
        if account is None:
            raise AccountNotFound("Account does not exist")
        return account

    def delete(self, address):
        # deleting something already gone is fine
        account = self.get(address)
        if account is None:
            log.debug("Nothing to delete for: %s", address)
            return

        try:
            self.storage.delete(account_path(account.address))
        except StorageFailure as exc:
            log.error("Failed to delete the account %s from storage: %s", account.address, exc)
            raise

        log.info("Deleted account: %s", account.address)

# EOF
