"""Runtime lookup of bundled resources and external tools.

The bundled wordlist lives in ``organizer/resources``.  ffprobe is
located once per process: an explicit ``FFPROBE_PATH`` wins, otherwise
the executable found on ``PATH``.
"""

import logging
import os
import shutil
import subprocess
import sys
from pathlib import Path

log = logging.getLogger(__name__)

RESOURCES_DIR = Path(__file__).resolve().parent / "resources"

_PROBE_TIMEOUT = 5

# None until the first lookup.
_ffprobe_available: bool | None = None
_ffprobe_path: str | None = None


def resource_path(relative_path: str) -> Path:
    """Path of a file shipped in the package's ``resources`` directory."""
    return RESOURCES_DIR / relative_path


def get_ffprobe_path() -> str:
    """Return the ffprobe command to run.

    ``FFPROBE_PATH`` overrides the ``PATH`` lookup.  When neither finds
    anything the bare name is returned and the OS gets the last word.
    """
    global _ffprobe_path
    if _ffprobe_path is None:
        _ffprobe_path = os.environ.get("FFPROBE_PATH") or shutil.which("ffprobe") or "ffprobe"
    return _ffprobe_path


def _runs(command: str) -> bool:
    """True when ``command -version`` starts and exits cleanly."""
    kwargs: dict = {"capture_output": True, "timeout": _PROBE_TIMEOUT}
    if sys.platform == "win32":
        kwargs["creationflags"] = subprocess.CREATE_NO_WINDOW
    try:
        return subprocess.run([command, "-version"], **kwargs).returncode == 0
    except (subprocess.TimeoutExpired, OSError) as exc:
        log.debug("ffprobe probe failed: %s", exc)
        return False


def is_ffprobe_available() -> bool:
    """Whether embedded video tags can be read at all.

    Checked once per process; a missing or broken ffprobe is reported
    with a single warning and video files fall back to filename parsing.
    """
    global _ffprobe_available
    if _ffprobe_available is None:
        command = get_ffprobe_path()
        _ffprobe_available = _runs(command)
        if not _ffprobe_available:
            log.warning("ffprobe unavailable (%s) -- embedded video tags will be ignored", command)
    return _ffprobe_available
