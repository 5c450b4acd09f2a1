"""Local stand-in for the browser fingerprinting library.

The server never interprets fingerprints; any stable opaque string works.
"""

import getpass
import hashlib
import platform
import uuid


def machine_fingerprint() -> str:
    parts = [
        platform.node(),
        platform.system(),
        platform.machine(),
        getpass.getuser(),
        f"{uuid.getnode():012x}",
    ]
    return hashlib.sha256("|".join(parts).encode()).hexdigest()[:32]
