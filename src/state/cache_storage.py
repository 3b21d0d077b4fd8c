from __future__ import annotations

import enum
import logging
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Protocol

from .backends import CacheBackend, CacheBackendError, build_backend
from .options import StateStoreOptions


CACHE_KEY_SUFFIX = "_state"
STATE_FILE = "state.txt"
# Fixed scratch directory name under the temp root, shared by every run
SCRATCH_DIR_NAME = "56acbeaa-1fef-4c79-8f84-7565e560fb03"

_NOT_FOUND_STATUSES = (404, "404", "NoSuchKey", "NotFound")

log = logging.getLogger(__name__)


class StateStorage(Protocol):
    def save(self, serialized_state: str) -> None:
        ...

    def restore(self) -> str:
        ...


class StateErrorKind(enum.Enum):
    NOT_FOUND = "not_found"
    TRANSPORT = "transport"
    EMPTY_STATE = "empty_state"
    MISSING_AFTER_RESTORE = "missing_after_restore"


@dataclass
class StepResult:
    """Outcome of one internal step; turned into log records by save/restore."""

    value: Any = None
    kind: Optional[StateErrorKind] = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.kind is None


def _unlink_safely(path: Path) -> None:
    try:
        path.unlink()
    except OSError:
        pass


def _reason(e: BaseException) -> str:
    return str(e) or "unknown reason"


class StateCacheStorage:
    """
    Keeps one serialized state string in a remote cache between runs.

    - `save(s)` replaces the entry `<prefix>_state` with a directory holding
      `<prefix>_state.txt`; an empty string only removes the old entry.
    - `restore()` returns the stored string, or "" when nothing usable exists.

    Neither call raises on backend failures: problems are logged and the
    caller starts over from an empty state. The scratch file used to stage
    the data is removed before either call returns.
    """

    def __init__(self, options: StateStoreOptions, *, backend: Optional[CacheBackend] = None) -> None:
        self._prefix = options.cache_prefix
        root = options.scratch_root or Path(tempfile.gettempdir())
        self._scratch_dir = Path(root) / SCRATCH_DIR_NAME
        self._backend = backend if backend is not None else build_backend(options)

    @property
    def cache_key(self) -> str:
        return f"{self._prefix}{CACHE_KEY_SUFFIX}"

    @property
    def state_file(self) -> Path:
        return self._scratch_dir / f"{self._prefix}_{STATE_FILE}"

    # -------- Core operations --------
    def save(self, serialized_state: str) -> None:
        self._scratch_dir.mkdir(parents=True, exist_ok=True)
        file_path = self.state_file
        key = self.cache_key
        try:
            with file_path.open("w", encoding="utf-8", newline="") as f:
                f.write(serialized_state)
            try:
                exists = self._cache_exists(key)
                if not exists.ok:
                    log.debug(exists.message)
                if exists.value:
                    reset = self._reset_cache(key)
                    if not reset.ok:
                        log.warning(reset.message)
                result = self._upload(file_path, key)
            except Exception as e:
                log.warning('Saving the state was not successful due to "%s"', _reason(e))
                return
            if result.kind is StateErrorKind.EMPTY_STATE:
                log.info(result.message)
        except UnicodeEncodeError as e:
            # Unencodable text is a bad value, not a scratch directory fault
            log.warning('Saving the state was not successful due to "%s"', _reason(e))
        finally:
            _unlink_safely(file_path)

    def restore(self) -> str:
        file_path = self.state_file
        key = self.cache_key
        try:
            self._scratch_dir.mkdir(parents=True, exist_ok=True)
            _unlink_safely(file_path)
            exists = self._cache_exists(key)
            if not exists.ok:
                log.debug(exists.message)
            if exists.value:
                result = self._download(file_path, key)
            else:
                result = StepResult(
                    "",
                    StateErrorKind.NOT_FOUND,
                    "The saved state was not found, the process starts from the first item.",
                )
        except Exception as e:
            log.warning('Restoring the state was not successful due to "%s"', _reason(e))
            return ""
        finally:
            _unlink_safely(file_path)

        if result.kind is StateErrorKind.NOT_FOUND:
            log.info(result.message)
        elif not result.ok:
            log.warning(result.message)
        return result.value or ""

    # -------- Steps --------
    def _cache_exists(self, key: str) -> StepResult:
        # The backend matches by prefix; only an identical key counts.
        # Any listing failure means "absent".
        try:
            keys = self._backend.list_keys(key)
        except Exception as e:
            return StepResult(False, StateErrorKind.TRANSPORT, f"Error checking if cache exist: {_reason(e)}")
        return StepResult(any(k == key for k in keys))

    def _reset_cache(self, key: str) -> StepResult:
        try:
            self._backend.delete(key)
        except CacheBackendError as e:
            if e.status is None:
                raise
            kind = StateErrorKind.NOT_FOUND if e.status in _NOT_FOUND_STATUSES else StateErrorKind.TRANSPORT
            return StepResult(kind=kind, message=f"Error delete {key}: [{e.status}] {_reason(e)}")
        return StepResult()

    def _upload(self, file_path: Path, key: str) -> StepResult:
        if file_path.stat().st_size == 0:
            return StepResult(kind=StateErrorKind.EMPTY_STATE, message="the state will be removed")
        self._backend.save([str(file_path.parent)], key)
        return StepResult()

    def _download(self, file_path: Path, key: str) -> StepResult:
        self._backend.restore([str(file_path.parent)], key)
        if not file_path.exists():
            return StepResult(
                "",
                StateErrorKind.MISSING_AFTER_RESTORE,
                "Unknown error when unpacking the cache, the process starts from the first item.",
            )
        with file_path.open("r", encoding="utf-8", newline="") as f:
            return StepResult(f.read())
