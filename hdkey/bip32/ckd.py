#!/usr/bin/env python3

# Copyright (C) The hdkey developers
#
# This file is part of hdkey. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of hdkey including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"""Child Key Derivation (CKD) driver shared by private and public nodes.

A single CKD step either succeeds, returning the child node,
or hits an invalid tweak (IL >= n, or a zero/infinity result),
returning the next index to try instead.
The retried index must stay in the same hardened/normal class
and below MAX_INDEX: running out of indexes is an error,
never a silent switch to a different kind of derivation.
"""

import logging
from typing import Any, Callable, NamedTuple, Optional, TypeVar

from hdkey.bip32.cache import DerivationCache, cache_id
from hdkey.bip32.der_path import HARDENED, MAX_INDEX
from hdkey.exceptions import HDKeyValueError
from hdkey.utils import Buffer

logger = logging.getLogger(__name__)

_Node = TypeVar("_Node")


class CKDResult(NamedTuple):
    "Either the derived child or the index to retry with."

    child: Optional[Any] = None
    retry_index: Optional[int] = None


def derive_child(
    cache: DerivationCache,
    prefix: str,
    parent_pub_key: Buffer,
    parent_chain_code: Buffer,
    index: int,
    ckd: Callable[[int], CKDResult],
) -> _Node:
    """Return the cached child at the normalized index, or derive it.

    The child obtained after a retry is cached under its own identity
    and under the identity originally requested.
    """

    def identity(i: int) -> str:
        return cache_id(prefix, parent_pub_key, parent_chain_code, i)

    requested_id = identity(index)
    child = cache.get(requested_id)
    if child is not None:
        return child

    hardened = index >= HARDENED
    current = index
    while True:
        result = ckd(current)
        if result.child is not None:
            break
        retry = result.retry_index
        logger.warning(f"Invalid child at index {current}, trying index {retry}")
        if retry >= MAX_INDEX or (retry >= HARDENED) != hardened:
            err_msg = f"no valid child key after index {current}: "
            err_msg += "hardened" if hardened else "normal"
            err_msg += " index range exhausted"
            raise HDKeyValueError(err_msg)
        current = retry
        child = cache.get(identity(current))
        if child is not None:
            return cache.set(requested_id, child)

    child = cache.set(identity(current), result.child)
    if current != index:
        cache.set(requested_id, child)
    return child
