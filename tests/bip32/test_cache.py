#!/usr/bin/env python3

# Copyright (C) The hdkey developers
#
# This file is part of hdkey. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of hdkey including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"Tests for the `hdkey.bip32.cache` and `hdkey.bip32.ckd` modules."

import logging

import pytest
from btclib.hashes import hash256

from hdkey.bip32.cache import DerivationCache, cache_id, default_cache
from hdkey.bip32.ckd import CKDResult, derive_child
from hdkey.bip32.der_path import HARDENED, MAX_INDEX
from hdkey.exceptions import HDKeyValueError

PUB_KEY = "02" + "11" * 32
CHAIN_CODE = "22" * 32
CHAIN_CODE_HASH = hash256(bytes.fromhex(CHAIN_CODE)).hex()


class Node:
    def __init__(self, index: int) -> None:
        self.index = index
        self.destroyed = False

    def is_destroyed(self) -> bool:
        return self.destroyed


def test_cache_id() -> None:
    assert cache_id("xprv", PUB_KEY, CHAIN_CODE, 0) == (
        "xprv" + PUB_KEY + CHAIN_CODE_HASH + "0"
    )
    assert cache_id(
        "tpub", bytes.fromhex(PUB_KEY), bytearray.fromhex(CHAIN_CODE), HARDENED
    ) == ("tpub" + PUB_KEY + CHAIN_CODE_HASH + str(HARDENED))

    # same public key, different chain code
    other_chain_code = "33" * 32
    assert cache_id("xprv", PUB_KEY, other_chain_code, 0) != cache_id(
        "xprv", PUB_KEY, CHAIN_CODE, 0
    )

    with pytest.raises(HDKeyValueError, match="invalid size: "):
        cache_id("xprv", PUB_KEY, CHAIN_CODE[:-2], 0)


def test_first_insert_wins() -> None:

    cache: DerivationCache = DerivationCache()
    key = cache_id("xprv", PUB_KEY, CHAIN_CODE, 1)
    assert cache.get(key) is None
    assert key not in cache

    first = Node(1)
    assert cache.set(key, first) is first
    assert cache.set(key, Node(1)) is first
    assert cache.get(key) is first
    assert key in cache
    assert len(cache) == 1

    cache.discard(key)
    assert key not in cache
    cache.discard(key)

    cache.set(key, first)
    cache.clear()
    assert len(cache) == 0


def test_destroyed_nodes_are_dropped() -> None:

    cache: DerivationCache = DerivationCache()
    key = cache_id("xprv", PUB_KEY, CHAIN_CODE, 1)
    first = Node(1)
    cache.set(key, first)
    first.destroyed = True

    second = Node(1)
    assert cache.set(key, second) is second
    second.destroyed = True
    assert cache.get(key) is None
    assert key not in cache


def test_default_cache() -> None:
    assert default_cache() is default_cache()
    assert isinstance(default_cache(), DerivationCache)


def test_derive_child_memoization() -> None:

    calls = []

    def ckd(index: int) -> CKDResult:
        calls.append(index)
        return CKDResult(child=Node(index))

    cache: DerivationCache = DerivationCache()
    child = derive_child(cache, "xprv", PUB_KEY, CHAIN_CODE, 7, ckd)
    assert child.index == 7
    assert derive_child(cache, "xprv", PUB_KEY, CHAIN_CODE, 7, ckd) is child
    assert calls == [7]

    # same parent, different network prefix
    other = derive_child(cache, "tprv", PUB_KEY, CHAIN_CODE, 7, ckd)
    assert other is not child
    assert calls == [7, 7]

    # same public key, different chain code
    other = derive_child(cache, "xprv", PUB_KEY, "33" * 32, 7, ckd)
    assert other is not child
    assert calls == [7, 7, 7]


def test_derive_child_retry() -> None:

    def ckd(index: int) -> CKDResult:
        if index == 5:
            return CKDResult(retry_index=6)
        return CKDResult(child=Node(index))

    cache: DerivationCache = DerivationCache()
    child = derive_child(cache, "xprv", PUB_KEY, CHAIN_CODE, 5, ckd)
    assert child.index == 6
    # cached under both the requested and the actual index
    assert cache.get(cache_id("xprv", PUB_KEY, CHAIN_CODE, 5)) is child
    assert cache.get(cache_id("xprv", PUB_KEY, CHAIN_CODE, 6)) is child
    assert derive_child(cache, "xprv", PUB_KEY, CHAIN_CODE, 6, ckd) is child

    # the retried index is already cached
    cache = DerivationCache()
    sibling = derive_child(cache, "xprv", PUB_KEY, CHAIN_CODE, 6, ckd)
    assert derive_child(cache, "xprv", PUB_KEY, CHAIN_CODE, 5, ckd) is sibling


def test_derive_child_exhausted() -> None:

    def ckd(index: int) -> CKDResult:
        return CKDResult(retry_index=index + 1)

    cache: DerivationCache = DerivationCache()
    err_msg = "normal index range exhausted"
    with pytest.raises(HDKeyValueError, match=err_msg):
        derive_child(cache, "xprv", PUB_KEY, CHAIN_CODE, HARDENED - 1, ckd)

    err_msg = "hardened index range exhausted"
    with pytest.raises(HDKeyValueError, match=err_msg):
        derive_child(cache, "xprv", PUB_KEY, CHAIN_CODE, MAX_INDEX - 1, ckd)
    assert len(cache) == 0


def test_retry_is_logged(caplog: pytest.LogCaptureFixture) -> None:

    def ckd(index: int) -> CKDResult:
        if index < 3:
            return CKDResult(retry_index=index + 1)
        return CKDResult(child=Node(index))

    cache: DerivationCache = DerivationCache()
    with caplog.at_level(logging.WARNING, logger="hdkey.bip32.ckd"):
        derive_child(cache, "xprv", PUB_KEY, CHAIN_CODE, 1, ckd)
    messages = [r.getMessage() for r in caplog.records]
    assert messages == [
        "Invalid child at index 1, trying index 2",
        "Invalid child at index 2, trying index 3",
    ]
