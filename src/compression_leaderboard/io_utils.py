import fcntl
import logging
import os
import stat
import tempfile
from time import monotonic, sleep

from compression_leaderboard.errors import LockTimeout

logger = logging.getLogger(__name__)

NEW_FILE_MODE = 0o644


def atomic_write_text(path, text: str) -> None:
    """
    Write text next to path and move it in place, readers never see a partial file
    """
    path = os.path.abspath(path)
    directory = os.path.dirname(path)
    fd, temp_path = tempfile.mkstemp(prefix=".tmp_", dir=directory)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        # mkstemp creates 0600 files, keep the mode of the replaced file
        if os.path.exists(path):
            os.chmod(temp_path, stat.S_IMODE(os.stat(path).st_mode))
        else:
            os.chmod(temp_path, NEW_FILE_MODE)
        os.replace(temp_path, path)
    except BaseException:
        if os.path.exists(temp_path):
            os.remove(temp_path)
        raise


class FileLock:
    """
    Exclusive advisory lock (flock) on a side file, held by one process at a time.
    The lock file is never removed, unlinking it would let two writers lock
    different inodes
    """

    def __init__(self, path, timeout: float = 300, poll_interval: float = 0.1) -> None:
        self.path = str(path)
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.fd = None

    def acquire(self) -> None:
        fd = os.open(self.path, os.O_RDWR | os.O_CREAT, 0o644)
        deadline = monotonic() + self.timeout
        waiting_logged = False
        while True:
            try:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
                self.fd = fd
                return
            except BlockingIOError:
                if self.timeout >= 0 and monotonic() >= deadline:
                    os.close(fd)
                    raise LockTimeout(f"Could not lock {self.path} within {self.timeout} seconds")
                if not waiting_logged:
                    logger.info(f"Waiting for lock {self.path}")
                    waiting_logged = True
                sleep(self.poll_interval)
            except OSError:
                os.close(fd)
                raise

    def release(self) -> None:
        if self.fd is None:
            return
        try:
            fcntl.flock(self.fd, fcntl.LOCK_UN)
        finally:
            os.close(self.fd)
            self.fd = None

    @property
    def is_locked(self) -> bool:
        return self.fd is not None

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.release()
