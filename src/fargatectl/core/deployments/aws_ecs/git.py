"""Source revision lookup used for image tags."""

import shutil
import subprocess  # nosec B404
from pathlib import Path


def short_revision(path: Path | None = None) -> str | None:
    """Return the short commit SHA of the git checkout at ``path``.

    Returns None when git is missing or ``path`` is not inside a work tree.
    """
    executable = shutil.which("git")
    if not executable:
        return None

    result = subprocess.run(  # nosec B603
        [executable, "rev-parse", "--short", "HEAD"],
        cwd=path or Path.cwd(),
        capture_output=True,
        text=True,
        check=False,
    )
    if result.returncode != 0:
        return None
    return result.stdout.strip() or None
