#
# (c) Copyright 2022 by Coinkite Inc. This file is covered by license found in COPYING-CC.
#
# Storage backends.
#
import os, stat, threading, pytest
import cbor2

from ethsign.accounts import AccountStore
from ethsign.exceptions import StorageFailure
from ethsign.storage import InMemoryStorage, FileStorage, list_children

from conftest import TEST_PRIVKEY, TEST_ADDRESS

def test_list_children():
    paths = ['accounts/0xaa', 'accounts/0xbb', 'accounts/sub/x', 'accounts/sub/y', 'other/0xcc',
                'accounts/']
    assert list_children(paths, 'accounts/') == ['0xaa', '0xbb', 'sub/']
    assert list_children(paths, 'nothing/') == []
    assert list_children(paths, '') == ['accounts/', 'other/']

@pytest.mark.parametrize('cls', [InMemoryStorage, FileStorage])
def test_basics(cls, tmp_path):
    s = cls() if cls is InMemoryStorage else cls(str(tmp_path / 'v.cbor'))

    assert s.get('a/b') is None
    assert s.list('a/') == []

    s.put('a/b', b'123')
    s.put('a/c', bytearray(b'456'))
    assert s.get('a/b') == b'123'
    assert s.get('a/c') == b'456'
    assert sorted(s.list('a/')) == ['b', 'c']

    # overwrite
    s.put('a/b', b'xyz')
    assert s.get('a/b') == b'xyz'

    s.delete('a/b')
    s.delete('a/b')
    s.delete('never/there')
    assert s.get('a/b') is None
    assert s.list('a/') == ['c']

def test_file_persists(tmp_path):
    fn = str(tmp_path / 'sub' / 'vault.cbor')

    store = AccountStore(FileStorage(fn))
    assert store.create(TEST_PRIVKEY) == TEST_ADDRESS
    other = store.create()

    # new instance sees same data
    store2 = AccountStore(FileStorage(fn))
    assert sorted(store2.list()) == sorted([TEST_ADDRESS, other])
    assert store2.export(TEST_ADDRESS).private_key == TEST_PRIVKEY

    store2.delete(other)
    assert AccountStore(FileStorage(fn)).list() == [TEST_ADDRESS]

    # private to owner
    assert stat.S_IMODE(os.stat(fn).st_mode) == 0o600

    # it is CBOR: path => bytes
    with open(fn, 'rb') as fp:
        d = cbor2.load(fp)
    assert list(d.keys()) == ['accounts/' + TEST_ADDRESS]
    assert isinstance(d['accounts/' + TEST_ADDRESS], bytes)

    assert not os.path.exists(fn + '.tmp')

def test_file_expands_user(tmp_path, monkeypatch):
    monkeypatch.setenv('HOME', str(tmp_path))
    s = FileStorage('~/x/vault.cbor')
    assert s.filename == str(tmp_path / 'x' / 'vault.cbor')
    s.put('k', b'v')
    assert os.path.exists(tmp_path / 'x' / 'vault.cbor')

@pytest.mark.parametrize('contents', [
    b'\xa2\x61',
    b'',
    cbor2.dumps([1, 2, 3]),
    cbor2.dumps({'a': 'not bytes'}),
])
def test_file_corrupt(tmp_path, contents):
    fn = tmp_path / 'vault.cbor'
    fn.write_bytes(contents)

    with pytest.raises(StorageFailure):
        FileStorage(str(fn))

def test_file_write_fails(tmp_path):
    fn = tmp_path / 'vault.cbor'
    s = FileStorage(str(fn))
    s.put('a', b'1')

    # a directory where the temp file should go
    os.mkdir(str(fn) + '.tmp')

    with pytest.raises(StorageFailure):
        s.put('b', b'2')
    with pytest.raises(StorageFailure):
        s.delete('a')

    # memory matches what is on disk
    assert s.get('b') is None
    assert s.get('a') == b'1'

def test_threads():
    # many writers, one store
    store = AccountStore(InMemoryStorage())
    got = []

    def worker():
        for _ in range(5):
            got.append(store.create())
        store.create(TEST_PRIVKEY)

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads: t.start()
    for t in threads: t.join()

    assert sorted(store.list()) == sorted(got + [TEST_ADDRESS])

def test_file_shared(tmp_path):
    # two processes on one vault file: say a server and the command line
    fn = str(tmp_path / 'vault.cbor')
    cli = AccountStore(FileStorage(fn))
    server = AccountStore(FileStorage(fn))

    assert cli.create(TEST_PRIVKEY) == TEST_ADDRESS
    other = server.create()

    assert sorted(AccountStore(FileStorage(fn)).list()) == sorted([TEST_ADDRESS, other])

    # each sees the other's changes
    assert sorted(cli.list()) == sorted(server.list())
    assert cli.get(other).address == other

    server.delete(TEST_ADDRESS)
    assert cli.get(TEST_ADDRESS) is None
    assert cli.list() == [other]

    cli.create(TEST_PRIVKEY)
    assert sorted(AccountStore(FileStorage(fn)).list()) == sorted([TEST_ADDRESS, other])

def test_file_shared_writers(tmp_path):
    # each thread has its own FileStorage, so only the file lock keeps them apart
    fn = str(tmp_path / 'vault.cbor')
    got = []

    def worker():
        store = AccountStore(FileStorage(fn))
        for _ in range(5):
            got.append(store.create())

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads: t.start()
    for t in threads: t.join()

    assert len(got) == 20
    assert sorted(AccountStore(FileStorage(fn)).list()) == sorted(got)

def test_file_removed(tmp_path):
    fn = tmp_path / 'vault.cbor'
    s = FileStorage(str(fn))
    s.put('a', b'1')

    fn.unlink()
    assert s.get('a') is None
    assert s.list('') == []

def test_file_tmp_cleanup(tmp_path, monkeypatch):
    fn = str(tmp_path / 'vault.cbor')
    s = FileStorage(fn)
    s.put('a', b'1')

    def boom(src, dst):
        raise OSError("disk on fire")
    monkeypatch.setattr(os, 'replace', boom)

    with pytest.raises(StorageFailure):
        s.put('b', b'2')

    # no stray copy of the keys
    assert not os.path.exists(fn + '.tmp')
    assert s.get('b') is None

    monkeypatch.undo()
    assert FileStorage(fn).get('b') is None
    assert FileStorage(fn).get('a') == b'1'

# EOF
