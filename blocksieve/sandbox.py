"""
sandbox.py - Optional privilege restriction before reading input

On OpenBSD the process unveils the input files read-only and pledges
"stdio rpath" so a hostile blocklist cannot make the tool do anything but
read and print. Everywhere else restrict() does nothing.
"""

from __future__ import annotations

import ctypes
import ctypes.util
import os
import sys
from typing import Final, Iterable

from blocksieve.errors import SandboxError

PLEDGE_PROMISES: Final[str] = "stdio rpath"


def is_supported() -> bool:
    """True on platforms that provide pledge(2) and unveil(2)."""
    return sys.platform.startswith("openbsd")


def _libc() -> ctypes.CDLL:
    return ctypes.CDLL(ctypes.util.find_library("c"), use_errno=True)


def _check(result: int, call: str) -> None:
    if result == -1:
        errno = ctypes.get_errno()
        raise SandboxError(errno, f"{call}: {os.strerror(errno)}")


def restrict(paths: Iterable[str] = ()) -> bool:
    """
    Restrict the process to reading the given paths.

    Paths that do not exist are not unveiled; opening them later fails
    with the ordinary read error.

    Args:
        paths: Files the run will open; stdin needs no unveil

    Returns:
        True if restrictions were applied, False on unsupported platforms

    Raises:
        SandboxError: if a pledge/unveil call fails
    """
    if not is_supported():
        return False

    libc = _libc()
    for path in paths:
        if not os.path.exists(path):
            continue
        _check(libc.unveil(os.fsencode(path), b"r"), f"unveil {path}")
    # Lock the unveil list
    _check(libc.unveil(None, None), "unveil")
    _check(libc.pledge(PLEDGE_PROMISES.encode(), None), "pledge")
    return True
