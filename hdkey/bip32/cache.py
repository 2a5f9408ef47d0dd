#!/usr/bin/env python3

# Copyright (C) The hdkey developers
#
# This file is part of hdkey. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of hdkey including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"""Memoization of derived BIP32 nodes.

A derived node is fully determined by its network key prefix,
its parent public key, its parent chain code, and its normalized
child index: the cache identity string is their concatenation,
with the chain code replaced by its hash256, e.g.

    "xprv" + "0339a36013...4c2" + "8d1a39c4...07f2" + "2147483648"

Entries are never replaced nor evicted:
the first node stored under an identity is the one every caller gets.
"""

import logging
import threading
from typing import Dict, Generic, Optional, TypeVar

from btclib.hashes import hash256

from hdkey.utils import Buffer, bytes_from_octets

logger = logging.getLogger(__name__)

_Node = TypeVar("_Node")

# prefix, public key and chain code hash
_INDEX_OFFSET = 4 + 33 * 2 + 32 * 2


def cache_id(
    prefix: str, parent_pub_key: Buffer, parent_chain_code: Buffer, index: int
) -> str:
    "Return the identity string of the child at index of a parent node."
    result = prefix + bytes_from_octets(parent_pub_key, 33).hex()
    result += hash256(bytes_from_octets(parent_chain_code, 32)).hex()
    return result + str(index)


def _index(key: str) -> str:
    return key[_INDEX_OFFSET:]


class DerivationCache(Generic[_Node]):
    """Thread-safe mapping from identity strings to derived nodes.

    Nodes that have been destroyed after insertion
    are dropped at lookup instead of being returned.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._nodes: Dict[str, _Node] = {}

    def get(self, key: str) -> Optional[_Node]:
        with self._lock:
            node = self._nodes.get(key)
            if node is None:
                return None
            if node.is_destroyed():  # type: ignore[attr-defined]
                del self._nodes[key]
                logger.debug(f"Dropped destroyed node from cache: {key[:4]}")
                return None
        logger.debug(f"Cache hit: {key[:4]} index {_index(key)}")
        return node

    def set(self, key: str, node: _Node) -> _Node:
        """Store the node unless the identity is already taken.

        Return the node stored under the identity,
        i.e. the first one ever inserted.
        """
        with self._lock:
            stored = self._nodes.get(key)
            if stored is not None and not stored.is_destroyed():  # type: ignore[attr-defined]
                return stored
            self._nodes[key] = node
        logger.debug(f"Cache insert: {key[:4]} index {_index(key)}")
        return node

    def discard(self, key: str) -> None:
        with self._lock:
            self._nodes.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._nodes.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._nodes)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._nodes


_DEFAULT_CACHE: DerivationCache = DerivationCache()


def default_cache() -> DerivationCache:
    "Return the process-wide cache used when no other one is provided."
    return _DEFAULT_CACHE
