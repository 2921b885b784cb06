"""Run loop: scan a library, resolve each file, place it."""
import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Protocol

from .formatter import PathError
from .models import MoveResult, PipelineState, Provenance
from .parser import is_media_file
from .placement import PlacementResolver, move_file

log = logging.getLogger(__name__)


class Choice(Enum):
    YES = "y"
    NO = "n"
    ALL = "a"
    SKIP_ALL = "s"
    QUIT = "q"


# Called with (source, target); returns the user's decision.
ConfirmCallback = Callable[[Path, Path], Choice]
Reporter = Callable[[MoveResult], None]


class Identity(Protocol):
    source: Path
    state: PipelineState
    provenance: Provenance
    skip_reason: str | None

    @property
    def skipped(self) -> bool: ...

    def describe(self) -> str: ...

    def target(self, root: Path) -> Path: ...


class Resolver(Protocol):
    kind: str

    def resolve(self, path: Path) -> Identity: ...


def scan_directory(root: Path) -> list[Path]:
    """
    List every file below *root*, recursively.

    Hidden files and directories are ignored and symlinked directories
    are not followed.  The result is sorted so runs are repeatable.
    """
    files = []
    for dirpath, dirnames, filenames in os.walk(root, followlinks=False):
        dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
        for name in sorted(filenames):
            if not name.startswith("."):
                files.append(Path(dirpath) / name)
    return files


def find_media_files(root: Path, category: str) -> list[Path]:
    """Files below *root* whose extension belongs to *category*."""
    return [path for path in scan_directory(root) if is_media_file(path, category)]


@dataclass
class RunSummary:
    """Counters and lists collected over one run."""
    moved: int = 0
    already_organized: int = 0
    skipped: list[tuple[Path, str]] = field(default_factory=list)
    problematic: list[tuple[Path, str]] = field(default_factory=list)
    quit_early: bool = False

    def record(self, result: MoveResult) -> None:
        if result.error:
            self.problematic.append((result.original_path, result.error))
        elif result.skipped:
            self.skipped.append((result.original_path, result.skip_reason or "unknown"))
        elif result.already_organized:
            self.already_organized += 1
        elif result.moved:
            self.moved += 1

    @property
    def ok(self) -> bool:
        return not self.problematic


class Organizer:
    """Process files one at a time, strictly in order.

    Args:
        root: Library root; canonical paths are built under it
        resolver: Movie, show or music resolver
        dry_run: Compute targets only, never touch the filesystem
        confirm: Interactive callback, or None to move without asking
        report: Called with each file's result as soon as it is known
    """

    def __init__(
        self,
        root: Path,
        resolver: Resolver,
        dry_run: bool = False,
        confirm: ConfirmCallback | None = None,
        report: Reporter | None = None,
    ):
        self.root = root
        self.resolver = resolver
        self.dry_run = dry_run
        self.confirm = confirm
        self.report = report
        self.placement = PlacementResolver()
        self.confirm_all = False
        self.skip_all = False
        self.quit_requested = False

    def run(self, files: list[Path]) -> RunSummary:
        summary = RunSummary()
        for path in files:
            try:
                result = self.process_file(path)
            except Exception as e:
                log.error("Unexpected error processing %s: %s", path, e)
                log.debug("Traceback", exc_info=True)
                result = MoveResult(original_path=path, error=f"unexpected error: {e}")

            summary.record(result)
            if self.report:
                self.report(result)
            if self.quit_requested:
                summary.quit_early = True
                break
        return summary

    def process_file(self, path: Path) -> MoveResult:
        """Resolve, place and (unless dry-run) move one file."""
        log.info("Processing %s", path.name)
        if self.skip_all:
            return MoveResult(original_path=path, skipped=True, skip_reason="skipped by user (skip all)")

        identity = self.resolver.resolve(path)
        if identity.skipped:
            log.info("Skipping %s: %s", path.name, identity.skip_reason)
            return MoveResult(
                original_path=path,
                skipped=True,
                skip_reason=identity.skip_reason,
                provenance=identity.provenance,
            )

        try:
            target = identity.target(self.root)
            final, in_place = self.placement.resolve(path, target)
        except PathError as e:
            log.error("Cannot place %s: %s", path.name, e)
            return MoveResult(original_path=path, skipped=True, skip_reason=str(e), provenance=identity.provenance)

        result = MoveResult(original_path=path, new_path=final, provenance=identity.provenance)
        log.info("Identified as %s [%s] -> %s", identity.describe(), identity.provenance.value, final)
        if in_place:
            result.already_organized = True
            return result

        if self.confirm and not self.confirm_all and not self.dry_run:
            choice = self.confirm(path, final)
            if choice is Choice.ALL:
                self.confirm_all = True
            elif choice is Choice.SKIP_ALL:
                self.skip_all = True
                self.placement.release(final)
                result.skipped, result.skip_reason = True, "skipped by user (skip all)"
                return result
            elif choice is Choice.QUIT:
                self.quit_requested = True
                self.placement.release(final)
                result.skipped, result.skip_reason = True, "skipped by user (quit)"
                return result
            elif choice is Choice.NO:
                self.placement.release(final)
                result.skipped, result.skip_reason = True, "skipped by user"
                return result

        if self.dry_run:
            result.moved = True
            return result

        try:
            move_file(path, final)
        except OSError as e:
            log.error("Move failed for %s: %s", path, e)
            self.placement.release(final)
            result.error = f"move failed: {e}"
            return result

        result.moved = True
        return result
