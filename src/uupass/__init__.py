"""
uupass -- a pass front-end that never leaks your paths.

Records live under opaque UUID names. The UUID -> path mapping sits in
one encrypted index record, and a path-named mirror is reconciled for
clients that only understand plain pass stores.
"""

import os

__version__ = "0.3.1"
__author__ = "uupass contributors"

STORE_HOME = os.environ.get("PASSWORD_STORE_DIR", "~/.password-store")
CONFIG_PATH = os.environ.get("UUPASS_CONFIG", "~/.config/uupass/config.yaml")
