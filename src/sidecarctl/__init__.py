"""
sidecarctl — desktop-side supervisor for the WebDAV bridge sidecar.

Starts and stops the bridge worker, reconciles its live status,
and mounts its endpoint into the desktop's virtual filesystem.

A smilinTux Open Source Project.
"""

import os

__version__ = "0.1.0"
__author__ = "smilinTux"

BRIDGE_HOME = os.environ.get("SIDECARCTL_HOME", "~/.sidecarctl")
