"""Collision-free placement of files at their canonical paths."""
import logging
import os
import shutil
from pathlib import Path

from .formatter import PathError

log = logging.getLogger(__name__)

MAX_DUP_ATTEMPTS = 100


class CollisionError(PathError):
    """Exception raised when every duplicate suffix is taken."""
    pass


def same_path(a: Path, b: Path) -> bool:
    """True when *a* and *b* name the same location."""
    return os.path.normcase(str(a.resolve())) == os.path.normcase(str(b.resolve()))


def dup_candidate(target: Path, index: int) -> Path:
    """``name.ext`` for index 0, ``name_dup_<index>.ext`` afterwards."""
    if index == 0:
        return target
    return target.with_name(f"{target.stem}_dup_{index}{target.suffix}")


def ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def move_file(source: Path, dest: Path) -> None:
    """Move *source* to *dest*, creating parents; never overwrites."""
    if dest.exists():
        raise FileExistsError(f"Destination already exists: {dest}")
    ensure_dir(dest.parent)
    shutil.move(str(source), str(dest))


class PlacementResolver:
    """Chooses final paths for one run.

    Paths handed out are remembered so that two files in the same run
    never share a target, even in a dry run where nothing is moved.
    """

    def __init__(self, max_attempts: int = MAX_DUP_ATTEMPTS):
        self.max_attempts = max_attempts
        self._claimed: set[str] = set()

    def _key(self, path: Path) -> str:
        return os.path.normcase(str(path.resolve()))

    def _taken(self, candidate: Path) -> bool:
        return self._key(candidate) in self._claimed or candidate.exists()

    def resolve(self, source: Path, target: Path) -> tuple[Path, bool]:
        """
        Pick the final path for *source*.

        Probes ``target``, then ``target_dup_1`` ... ``target_dup_N`` and
        takes the first one that is free.  When a probe lands on *source*
        itself the file is already in place.

        Returns:
            (final_path, already_organized)

        Raises:
            CollisionError: If all probes are taken
        """
        for index in range(self.max_attempts + 1):
            candidate = dup_candidate(target, index)
            if same_path(candidate, source):
                self._claimed.add(self._key(candidate))
                return candidate, True
            if not self._taken(candidate):
                self._claimed.add(self._key(candidate))
                if index:
                    log.info("Target exists, using %s", candidate.name)
                return candidate, False
        raise CollisionError(
            f"No free name for {target.name} after {self.max_attempts} duplicate suffixes"
        )

    def release(self, path: Path) -> None:
        """Give back a path handed out by resolve() that will not be used."""
        self._claimed.discard(self._key(path))
