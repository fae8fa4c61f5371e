"""Output locations and safe writes for generated artifacts."""

import logging
import os
import stat
import tempfile

logger = logging.getLogger(__name__)

CQL_DIR = ("input", "cql")
PLAN_DEFINITION_DIR = ("input", "resources", "plandefinition")
MEASURE_DIR = ("input", "resources", "measure")


def output_path(output_dir, subdir, file_name):
    """``<output_dir>/<subdir...>/<file_name>``"""
    return os.path.join(output_dir, *subdir, file_name)


def should_generate(file_path, replace):
    """Existing outputs are only regenerated when *replace* is set."""
    if os.path.exists(file_path) and not replace:
        logger.info(f"File {file_path} already exists - skipping (use --replace)")
        return False
    return True


def _target_mode(file_path):
    """Mode of the existing file, or the umask default for a new one."""
    try:
        return stat.S_IMODE(os.stat(file_path).st_mode)
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask


def write_text_atomic(file_path, text):
    """Write *text* to *file_path* so readers never see a partial file.

    The content goes to a temporary file in the same directory which then
    replaces the target, keeping the target's permissions.
    """
    directory = os.path.dirname(os.path.abspath(file_path))
    os.makedirs(directory, exist_ok=True)
    mode = _target_mode(file_path)

    fd, tmp_path = tempfile.mkstemp(
        prefix=".", suffix=".tmp", dir=directory,
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
            f.write(text)
        os.chmod(tmp_path, mode)
        os.replace(tmp_path, file_path)
    finally:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
    logger.info(f"Generated {file_path}")
    return file_path
