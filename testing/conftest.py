import pytest

from ethsign.accounts import AccountStore
from ethsign.backend import Backend
from ethsign.exceptions import StorageFailure
from ethsign.keys import KeyPair
from ethsign.storage import InMemoryStorage, Storage
from ethsign.utils import pubkey_to_address

# known key, and values from other implementations (go-ethereum, ethers.js)
TEST_PRIVKEY = 'ec85999367d32fbbe02dd600a2a44550b95274cc67d14375a9f0bce233f13ad2'
TEST_ADDRESS = '0xd5bcc62d9b1087a5cfec116c24d6187dd40fdf8a'
TEST_CHECKSUM_ADDRESS = '0xd5Bcc62D9b1087A5CfEC116C24D6187DD40fDf8A'

# secp256k1 group order: not a valid key
CURVE_ORDER_HEX = 'fffffffffffffffffffffffffffffffebaaedce6af48a03bbfd25e8cd0364141'

class BrokenStorage(Storage):
    # every operation fails, or can be told to give canned answers
    def __init__(self, get_result=False):
        self.get_result = get_result

    def list(self, prefix):
        raise StorageFailure("Bang for List!")

    def get(self, path):
        if self.get_result is not False:
            return self.get_result
        raise StorageFailure("Bang for Get!")

    def put(self, path, value):
        raise StorageFailure("Bang for Put!")

    def delete(self, path):
        raise StorageFailure("Bang for Delete!")

@pytest.fixture
def storage():
    return InMemoryStorage()

@pytest.fixture
def store(storage):
    return AccountStore(storage)

@pytest.fixture
def backend(store):
    return Backend(store)

@pytest.fixture
def test_account(store):
    # store holding the well-known test key
    store.create(TEST_PRIVKEY)
    return store.export(TEST_ADDRESS)

@pytest.fixture
def wipes(monkeypatch):
    # records each KeyPair wipe: list of the address whose key was zeroed
    got = []
    orig = KeyPair.zeroize

    def zeroize(self):
        got.append(pubkey_to_address(self.public_key) if hasattr(self, 'public_key') else None)
        return orig(self)

    monkeypatch.setattr(KeyPair, 'zeroize', zeroize)
    return got

# EOF
