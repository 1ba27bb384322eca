#
# (c) Copyright 2022 by Coinkite Inc. This file is covered by license found in COPYING-CC.
#
# transport.py
#
# Talk to a vault: either one in this process, or a server on a Unix socket.
#
# Wire format: CBOR maps, each preceded by 4-byte big-endian length.
#
#   request:    { op, path, data }
#   response:   { data }  or  { error, code, kind }
#
import os, struct, logging, socket, socketserver, traceback
import cbor2
from .constants import DEFAULT_PIPE, MAX_MSG_SIZE
from .exceptions import VaultError, ALL_ERRORS

log = logging.getLogger(__name__)

# Change this to see traffic details
VERBOSE = False

# never echoed in traffic dumps
SECRET_FIELDS = { 'privateKey' }

def _recv_exact(sock, count):
    # read exactly count bytes; None if peer closed before first byte
    buf = b''
    while len(buf) < count:
        chunk = sock.recv(count - len(buf))
        if not chunk:
            if not buf:
                return None
            raise VaultError('truncated message', 400)
        buf += chunk
    return buf

def send_msg(sock, obj):
    body = cbor2.dumps(obj)
    sock.sendall(struct.pack('>I', len(body)) + body)

def recv_msg(sock):
    # returns decoded object, or None at end of stream
    hdr = _recv_exact(sock, 4)
    if hdr is None:
        return None

    ln, = struct.unpack('>I', hdr)
    if ln > MAX_MSG_SIZE:
        raise VaultError('msg too long', 413)

    body = _recv_exact(sock, ln)
    if body is None:
        raise VaultError('truncated message', 400)

    try:
        return cbor2.loads(body)
    except cbor2.CBORDecodeError:
        raise VaultError('bad cbor', 422)

def _trace(prefix, d):
    # one line summary of a message, without secrets
    if not d:
        return ''
    return prefix + ', '.join(k + '=' + ('***' if k in SECRET_FIELDS else str(v))
                                    for k, v in d.items())

class VaultTransportABC:
    #
    # Abstract base class. Same interface wherever the vault lives.
    #

    def request(self, op, path, **data):
        # returns response fields (dict) or None; raises VaultError subclasses
        raise NotImplementedError

    def close(self):
        # release resources
        pass

class VaultLocalTransport(VaultTransportABC):
    #
    # Vault in this process: calls the backend directly.
    #

    def __init__(self, backend):
        self.backend = backend
        self.name = 'local'

    def __repr__(self):
        return '<%s %r>' % (self.__class__.__name__, self.backend)

    def close(self):
        self.backend.store.storage.close()

    def request(self, op, path, **data):
        return self.backend.handle_request(op, path, data)

class VaultUnixTransport(VaultTransportABC):
    #
    # Vault server running on a Unix socket (see "ethsign serve").
    #

    @classmethod
    def find_server(cls, pipename=DEFAULT_PIPE):
        if os.path.exists(pipename):
            return cls(pipename)
        return None

    def __init__(self, pipename=DEFAULT_PIPE):
        self.name = pipename
        self.sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        self.sock.connect(pipename)

    def __repr__(self):
        return '<%s %s>' % (self.__class__.__name__, self.name)

    def close(self):
        self.sock.close()

    def request(self, op, path, **data):
        if VERBOSE:
            print(f">> {op} {path} " + _trace('', data))

        send_msg(self.sock, dict(op=op, path=path, data=data))
        resp = recv_msg(self.sock)

        if resp is None:
            # closed socket causes this
            raise RuntimeError("Vault server closed connection?")

        if VERBOSE:
            print("<< " + (_trace('', resp.get('data')) if 'error' not in resp else repr(resp)))

        if 'error' in resp:
            cls = ALL_ERRORS.get(resp.get('kind'), VaultError)
            raise cls(resp['error'], resp.get('code', 500))

        return resp.get('data')

class VaultRequestHandler(socketserver.BaseRequestHandler):
    # One connection: many requests, answered in order.

    def handle(self):
        log.debug("Connected.")
        while 1:
            try:
                msg = recv_msg(self.request)
            except VaultError as exc:
                # framing is lost, so tell them and hang up
                send_msg(self.request, dict(error=str(exc), code=exc.code, kind=exc.kind))
                break

            if msg is None:
                break

            resp = self.server.dispatch(msg)
            send_msg(self.request, resp)

        log.debug("Disconnected.")

class VaultUnixServer(socketserver.ThreadingMixIn, socketserver.UnixStreamServer):
    #
    # Serve a backend on a Unix socket; a thread per connection, all sharing
    # the same backend (and so the same account store).
    #
    daemon_threads = True

    def __init__(self, pipename, backend):
        self.pipename = pipename
        self.backend = backend
        self._cleanup()
        super().__init__(pipename, VaultRequestHandler)
        os.chmod(pipename, 0o600)

    def _cleanup(self):
        if os.path.exists(self.pipename):
            os.unlink(self.pipename)

    def server_close(self):
        super().server_close()
        self._cleanup()

    def dispatch(self, msg):
        # run one request, always returns a response dict
        op = path = None
        try:
            if not isinstance(msg, dict):
                raise VaultError('bad cbor top-level obj', 422)

            op = msg.get('op', None)
            path = msg.get('path', None)
            data = msg.get('data', None) or {}
            if not op or not isinstance(path, str):
                raise VaultError('no op or path in msg', 400)
            if not isinstance(data, dict):
                raise VaultError('data must be a map', 400)

            resp = dict(data=self.backend.handle_request(op, path, data))

        except VaultError as exc:
            resp = dict(error=str(exc), code=exc.code, kind=exc.kind)

        except Exception as exc:
            # shouldn't happen
            log.error("FAILED: Request '%s %s' => %s", op, path, exc)
            log.debug(traceback.format_exc())
            resp = dict(error="internal fail", code=500, kind='VaultError')

        if VERBOSE:
            print(f"Request '{op} {path}' => ", end='')
            if 'error' not in resp:
                print(', '.join((resp['data'] or {}).keys()))
            else:
                print(resp)

        return resp

def serve(backend, pipename=DEFAULT_PIPE):
    # Run until interrupted.
    with VaultUnixServer(pipename, backend) as server:
        log.info("Waiting for connections on: %s", pipename)
        server.serve_forever()

# EOF
