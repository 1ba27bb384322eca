#
# (c) Copyright 2022 by Coinkite Inc. This file is covered by license found in COPYING-CC.
#
# Unix socket server and client, for real.
#
import os, socket, stat, struct, tempfile, threading, shutil, pytest

from ethsign.accounts import AccountStore
from ethsign.backend import Backend
from ethsign.exceptions import (MalformedAddress, AccountNotFound, InvalidScalar,
                                    UnsupportedOperation, StorageFailure)
from ethsign.storage import InMemoryStorage
from ethsign.transport import (VaultUnixServer, VaultUnixTransport, VaultLocalTransport,
                                    send_msg, recv_msg)

from conftest import TEST_PRIVKEY, TEST_ADDRESS, CURVE_ORDER_HEX, BrokenStorage

DIGEST = '0x1eb788716336ddae8670d3d9f6608548ddfa5001d5fec18df7d366b0c8f777fc'
SIG = ('0x68fc99121ceea8dfdf3d229bd6cafa7e09a33859db579a3b886d65f933498d8d'
       '3838dc621de42e8356066293551e0fa84ea0a908a6c2836a2b6aa874747e29841b')

def start_server(backend):
    # short path: unix socket names are limited in length
    tmpdir = tempfile.mkdtemp(prefix='es')
    pipe = os.path.join(tmpdir, 'pipe')

    server = VaultUnixServer(pipe, backend)
    th = threading.Thread(target=server.serve_forever, daemon=True)
    th.start()

    def stop():
        server.shutdown()
        server.server_close()
        shutil.rmtree(tmpdir, ignore_errors=True)

    return pipe, stop

@pytest.fixture
def server(backend):
    pipe, stop = start_server(backend)
    yield pipe
    stop()

def test_round_trip(server):
    assert stat.S_IMODE(os.stat(server).st_mode) == 0o600

    vault = VaultUnixTransport(server)
    try:
        assert vault.request('list', 'accounts') == dict(keys=[])

        resp = vault.request('update', 'accounts', privateKey=TEST_PRIVKEY)
        assert resp == dict(address=TEST_ADDRESS)
        other = vault.request('update', 'accounts')['address']

        assert set(vault.request('list', 'accounts')['keys']) == {TEST_ADDRESS, other}
        assert vault.request('read', 'accounts/' + TEST_ADDRESS[2:]) == dict(address=TEST_ADDRESS)
        assert vault.request('read', 'export/accounts/' + TEST_ADDRESS)['privateKey'] == TEST_PRIVKEY

        resp = vault.request('update', f'accounts/{TEST_ADDRESS}/sign_digest', hash=DIGEST)
        assert resp == dict(signature=SIG)

        assert vault.request('delete', 'accounts/' + other) is None
        assert vault.request('read', 'accounts/' + other) is None
        assert vault.request('delete', 'accounts/' + other) is None
    finally:
        vault.close()

def test_errors(server):
    vault = VaultUnixTransport(server)

    with pytest.raises(MalformedAddress) as err:
        vault.request('read', 'accounts/not-an-address')
    assert err.value.code == 400

    with pytest.raises(InvalidScalar):
        vault.request('update', 'accounts', privateKey=CURVE_ORDER_HEX)

    with pytest.raises(AccountNotFound) as err:
        vault.request('read', 'export/accounts/0x' + '55'*20)
    assert str(err.value) == 'Account does not exist'
    assert err.value.code == 404

    with pytest.raises(UnsupportedOperation) as err:
        vault.request('read', 'nowhere')
    assert err.value.code == 404

    # connection still good after errors
    assert vault.request('list', 'accounts') == dict(keys=[])
    vault.close()

def test_storage_failure_passes_through():
    pipe, stop = start_server(Backend(AccountStore(BrokenStorage())))
    try:
        vault = VaultUnixTransport(pipe)
        with pytest.raises(StorageFailure) as err:
            vault.request('list', 'accounts')
        assert str(err.value) == 'Bang for List!'
        vault.close()
    finally:
        stop()

def test_many_clients(server):
    # threads on server share one store
    addrs = []
    def worker():
        v = VaultUnixTransport(server)
        for _ in range(3):
            addrs.append(v.request('create', 'accounts')['address'])
        v.close()

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads: t.start()
    for t in threads: t.join()

    v = VaultUnixTransport(server)
    assert sorted(v.request('list', 'accounts')['keys']) == sorted(addrs)
    assert len(addrs) == 12
    v.close()

def test_bad_messages(server):
    sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    sock.connect(server)

    send_msg(sock, [1, 2, 3])
    resp = recv_msg(sock)
    assert resp['code'] == 422

    send_msg(sock, dict(op='read'))
    resp = recv_msg(sock)
    assert resp['code'] == 400

    send_msg(sock, dict(op='update', path='accounts', data='nope'))
    resp = recv_msg(sock)
    assert resp['code'] == 400

    # not CBOR at all: server answers then hangs up
    junk = b'\xa2\x61'
    sock.sendall(struct.pack('>I', len(junk)) + junk)
    resp = recv_msg(sock)
    assert resp['code'] == 422
    assert recv_msg(sock) is None

    sock.close()

def test_find_server(server):
    v = VaultUnixTransport.find_server(server)
    assert v is not None
    v.close()

    assert VaultUnixTransport.find_server(server + '-nope') is None

def test_local_transport(backend):
    vault = VaultLocalTransport(backend)
    assert vault.request('update', 'accounts', privateKey=TEST_PRIVKEY) == dict(address=TEST_ADDRESS)
    resp = vault.request('create', f'accounts/{TEST_ADDRESS}/sign_digest', hash=DIGEST)
    assert resp == dict(signature=SIG)
    vault.close()

# EOF
