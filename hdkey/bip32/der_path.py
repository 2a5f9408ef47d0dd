#!/usr/bin/env python3

# Copyright (C) The hdkey developers
#
# This file is part of hdkey. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of hdkey including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"""BIP32 derivation path.

A derivation path is a string like "m/44'/0'/1h/0/10":

- an optional root marker ("m", "M" or "m'"), ignored
- "/"-separated decimal indexes,
  each with an optional hardening symbol ("'", "h", or "H")
- blanks around each step are ignored, empty steps are not allowed

"" and "m" are the empty path.
"""

from typing import Iterable, List, Tuple

from hdkey.exceptions import HDKeyTypeError, HDKeyValueError

HARDENED = 0x80000000
MAX_INDEX = 0x100000000
MAX_DEPTH = 255

# default hardening symbol among the possible ones: "'", "h", "H"
_HARDENING = "'"
_ROOT_MARKERS = ("m", "M", "m'")


def int_from_index_str(s: str) -> int:
    """Return the integer index of a single derivation step.

    The hardening symbol adds HARDENED to the decimal value.
    """

    s = s.strip()
    hardened = False
    if s and s[-1] in ("'", "h", "H"):
        s = s[:-1]
        hardened = True

    if not s.isdecimal() or not s.isascii():
        raise HDKeyValueError(f"invalid derivation step: {s!r}")

    index = int(s) + (HARDENED if hardened else 0)
    if not 0 <= index < MAX_INDEX:
        raise HDKeyValueError(f"invalid index: {index}")
    return index


def str_from_index_int(i: int, hardening: str = _HARDENING) -> str:

    if hardening not in ("'", "h", "H"):
        raise HDKeyValueError(f"invalid hardening symbol: {hardening}")
    if not 0 <= i < MAX_INDEX:
        raise HDKeyValueError(f"invalid index: {i}")
    if i < HARDENED:
        return str(i)
    return str(i - HARDENED) + hardening


def steps_from_path(path: str) -> List[Tuple[int, bool]]:
    """Return the (index, hardened) pairs of a derivation path.

    Indexes are normalized: hardened ones are not lower than HARDENED.
    """

    if not isinstance(path, str):
        raise HDKeyTypeError(f"path is not a string: {type(path).__name__}")

    if path.strip() == "":
        return []

    steps = [x.strip() for x in path.split("/")]
    if steps[0] in _ROOT_MARKERS:
        steps = steps[1:]

    if len(steps) > MAX_DEPTH:
        raise HDKeyValueError(f"depth greater than {MAX_DEPTH}: {len(steps)}")

    result: List[Tuple[int, bool]] = []
    for step in steps:
        if step == "":
            raise HDKeyValueError(f"empty derivation step in path: {path!r}")
        index = int_from_index_str(step)
        result.append((index, index >= HARDENED))
    return result


def indexes_from_path(path: str) -> List[int]:
    "Return the normalized integer indexes of a derivation path."
    return [index for index, _ in steps_from_path(path)]


def str_from_path(indexes: Iterable[int], hardening: str = _HARDENING) -> str:
    "Return the 'm/...' string of a sequence of integer indexes."
    result = "/".join(str_from_index_int(i, hardening) for i in indexes)
    return "m" + ("/" + result if result else "")


def is_valid_path(path: str) -> bool:
    "Return True if the path can be parsed."
    try:
        steps_from_path(path)
    except (HDKeyTypeError, HDKeyValueError):
        return False
    return True
