# timeline_padder/about.py
"""
Version information for the command-line --version output.
"""

import sys

import opentimelineio as otio

TLP_VERSION = "0.1"  # Application version constant


def get_version_text() -> str:
    """One line per component: application, Python and OpenTimelineIO versions."""
    python_version = sys.version.split()[0]
    otio_version = getattr(otio, '__version__', 'unknown')
    return (f"TimelinePadder {TLP_VERSION}\n"
            f"Python {python_version}\n"
            f"OpenTimelineIO {otio_version}")
