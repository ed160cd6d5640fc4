# -*- coding: utf-8 -*-
"""
timeline_padder/utils/executable_finder.py

Locates the external media tools (ffmpeg, ffprobe) the padding pipeline
shells out to.
"""

import logging
import os
import shutil  # For shutil.which (system PATH search)
import sys     # For PyInstaller bundle detection (sys.frozen, sys._MEIPASS)
from typing import Optional

logger = logging.getLogger(__name__)

# Subdirectories checked next to the project (bundled or not)
_COMMON_EXECUTABLE_SUBFOLDERS = ["ffmpeg_bin", "bin"]

# Environment variable prefix for explicit overrides, e.g. TIMELINE_PADDER_FFMPEG
ENV_PREFIX = "TIMELINE_PADDER_"


def _search_dirs() -> list:
    """Directories searched before falling back to PATH."""
    if getattr(sys, 'frozen', False) and hasattr(sys, '_MEIPASS'):
        base_dir = sys._MEIPASS
        logger.debug("Running bundled, checking PyInstaller directory: %s", base_dir)
        return [base_dir] + [os.path.join(base_dir, sub) for sub in _COMMON_EXECUTABLE_SUBFOLDERS]

    # timeline_padder/utils/ -> project root
    project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
    return [os.path.join(project_root, sub) for sub in _COMMON_EXECUTABLE_SUBFOLDERS]


def find_executable(name: str) -> Optional[str]:
    """
    Locates an external executable by its name (e.g., "ffmpeg").

    Search order:
    1.  **Environment override:** ``TIMELINE_PADDER_<NAME>`` (e.g.
        ``TIMELINE_PADDER_FFPROBE``) pointing at an existing file.
    2.  **Project subfolders:** ``ffmpeg_bin/`` and ``bin/`` beside the
        package, or inside the PyInstaller bundle when frozen.
    3.  **System PATH:** ``shutil.which``.

    Args:
        name: Base name of the executable. ".exe" is appended on Windows.

    Returns:
        Absolute path to the executable, or None if it could not be found.
    """
    executable_name = f"{name}.exe" if os.name == 'nt' else name

    override = os.environ.get(f"{ENV_PREFIX}{name.upper()}")
    if override:
        if os.path.isfile(override):
            logger.info("Using '%s' from environment override: %s", name, override)
            return os.path.abspath(override)
        logger.warning("Environment override for '%s' points to a missing file: %s", name, override)

    for directory in _search_dirs():
        exe_path = os.path.join(directory, executable_name)
        if os.path.isfile(exe_path):
            logger.info("Found '%s' in: %s", name, directory)
            return os.path.abspath(exe_path)

    exe_path_in_path = shutil.which(name)
    if exe_path_in_path:
        logger.info("Found '%s' executable in system PATH: %s", name, exe_path_in_path)
        return os.path.abspath(exe_path_in_path)

    logger.error(
        "Executable '%s' could not be located in overrides, project subfolders (%s), or system PATH.",
        name, ', '.join(_COMMON_EXECUTABLE_SUBFOLDERS)
    )
    return None
