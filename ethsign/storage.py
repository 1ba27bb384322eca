#
# (c) Copyright 2022 by Coinkite Inc. This file is covered by license found in COPYING-CC.
#
# storage.py
#
# Key/value storage used by the account store. Values are bytes, keys are
# slash-separated paths. Each call is atomic with respect to other threads.
#
import os, fcntl, threading, logging
from contextlib import contextmanager
import cbor2
from .exceptions import StorageFailure

log = logging.getLogger(__name__)

def list_children(paths, prefix):
    # Immediate children of prefix, in the style of a directory listing:
    # deeper paths collapse into a single "name/" entry.
    rv = []
    for p in paths:
        if not p.startswith(prefix):
            continue
        here = p[len(prefix):]
        if not here:
            continue
        if '/' in here:
            here = here[0:here.find('/')+1]
        if here not in rv:
            rv.append(here)
    return rv

class Storage:
    #
    # Abstract base class.
    #

    def get(self, path):
        # return bytes, or None if nothing there
        raise NotImplementedError

    def put(self, path, value):
        raise NotImplementedError

    def delete(self, path):
        # no error if missing
        raise NotImplementedError

    def list(self, prefix):
        # names directly under prefix (prefix removed)
        raise NotImplementedError

    def close(self):
        # release resources
        pass

class InMemoryStorage(Storage):
    #
    # Nothing saved. For tests, and throw-away servers.
    #

    def __init__(self):
        self._data = dict()
        self._lock = threading.Lock()

    def __repr__(self):
        return '<%s: %d entries>' % (self.__class__.__name__, len(self._data))

    def get(self, path):
        with self._lock:
            return self._data.get(path)

    def put(self, path, value):
        assert isinstance(value, (bytes, bytearray))
        with self._lock:
            self._data[path] = bytes(value)

    def delete(self, path):
        with self._lock:
            self._data.pop(path, None)

    def list(self, prefix):
        with self._lock:
            return list_children(list(self._data), prefix)

class FileStorage(InMemoryStorage):
    #
    # Whole store kept in one file, as a CBOR map of path => bytes.
    # Rewritten (atomically) on every change. File is private to the user.
    #
    # Other processes may use the same file (a server, and the command line), so
    # every change is made under an exclusive lock on a side file, against a fresh
    # copy of the file. Reads pick up the file again if it has been replaced.
    #

    def __init__(self, filename):
        super().__init__()
        self.filename = os.path.expanduser(filename)
        self.lockname = self.filename + '.lock'
        self._stamp = None

        with self._lock:
            self._refresh()

        if self._stamp is None:
            log.info("New vault file will be created: %s", self.filename)

    def __repr__(self):
        return '<%s %s: %d entries>' % (self.__class__.__name__, self.filename, len(self._data))

    @contextmanager
    def _file_lock(self, mode):
        # Lock the side file, not the vault: that is replaced on every save.
        try:
            if mode == fcntl.LOCK_EX:
                os.makedirs(os.path.dirname(self.filename) or '.', mode=0o700, exist_ok=True)
            fd = os.open(self.lockname, os.O_RDWR | os.O_CREAT, 0o600)
        except OSError as exc:
            log.error("Failed to open lock file %s: %s", self.lockname, exc)
            raise StorageFailure(f"Unable to lock vault file: {self.filename}")

        try:
            fcntl.flock(fd, mode)
            try:
                yield
            finally:
                fcntl.flock(fd, fcntl.LOCK_UN)
        finally:
            os.close(fd)

    def _file_stamp(self):
        # identifies one version of the file; None if no file
        try:
            st = os.stat(self.filename)
        except FileNotFoundError:
            return None
        return (st.st_ino, st.st_mtime_ns, st.st_size)

    def _refresh(self):
        # caller holds self._lock; reload if file is not what we last saw
        if self._file_stamp() == self._stamp:
            return

        with self._file_lock(fcntl.LOCK_SH):
            self._load()

    def _load(self):
        # caller holds both locks
        try:
            with open(self.filename, 'rb') as fp:
                st = os.fstat(fp.fileno())
                data = cbor2.load(fp)
        except FileNotFoundError:
            # removed under us
            self._data = dict()
            self._stamp = None
            return
        except (OSError, cbor2.CBORDecodeError) as exc:
            log.error("Failed to read vault file %s: %s", self.filename, exc)
            raise StorageFailure(f"Unable to read vault file: {self.filename}")

        if not isinstance(data, dict) or not all(isinstance(k, str) and isinstance(v, bytes)
                                                        for k, v in data.items()):
            raise StorageFailure(f"Corrupt vault file: {self.filename}")

        self._data = data
        self._stamp = (st.st_ino, st.st_mtime_ns, st.st_size)

    def _save(self):
        # caller holds both locks
        tmp = self.filename + '.tmp'
        created = False
        try:
            fd = os.open(tmp, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            created = True
            with os.fdopen(fd, 'wb') as fp:
                cbor2.dump(self._data, fp)
                fp.flush()
                os.fsync(fp.fileno())

            os.replace(tmp, self.filename)
        except OSError as exc:
            log.error("Failed to write vault file %s: %s", self.filename, exc)
            if created:
                # holds keys: don't leave it around
                try:
                    os.unlink(tmp)
                except FileNotFoundError:
                    pass
            raise StorageFailure(f"Unable to write vault file: {self.filename}")

        self._stamp = self._file_stamp()

    def get(self, path):
        with self._lock:
            self._refresh()
            return self._data.get(path)

    def list(self, prefix):
        with self._lock:
            self._refresh()
            return list_children(list(self._data), prefix)

    def put(self, path, value):
        assert isinstance(value, (bytes, bytearray))
        with self._lock, self._file_lock(fcntl.LOCK_EX):
            self._refresh()

            prev = self._data.get(path)
            self._data[path] = bytes(value)
            try:
                self._save()
            except StorageFailure:
                # keep memory in step with the file
                if prev is None:
                    del self._data[path]
                else:
                    self._data[path] = prev
                raise

    def delete(self, path):
        with self._lock, self._file_lock(fcntl.LOCK_EX):
            self._refresh()

            if path not in self._data:
                return
            prev = self._data.pop(path)
            try:
                self._save()
            except StorageFailure:
                self._data[path] = prev
                raise

# EOF
