#!/usr/bin/env python3

# Copyright (C) The hdkey developers
#
# This file is part of hdkey. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of hdkey including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"""Module hdkey.bip32."""

from hdkey.bip32.cache import DerivationCache, default_cache
from hdkey.bip32.der_path import (
    HARDENED,
    MAX_INDEX,
    indexes_from_path,
    is_valid_path,
    str_from_path,
)
from hdkey.bip32.private import MAX_ENTROPY, MIN_ENTROPY, HDPrivateKey
from hdkey.bip32.public import HDPublicKey

__all__ = [
    "DerivationCache",
    "default_cache",
    "HARDENED",
    "MAX_INDEX",
    "MIN_ENTROPY",
    "MAX_ENTROPY",
    "indexes_from_path",
    "is_valid_path",
    "str_from_path",
    "HDPrivateKey",
    "HDPublicKey",
]
