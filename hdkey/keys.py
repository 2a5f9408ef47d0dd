#!/usr/bin/env python3

# Copyright (C) The hdkey developers
#
# This file is part of hdkey. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of hdkey including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"""secp256k1 key helpers used by the derivation engine.

Private keys are 32 bytes big-endian scalars in [1, n-1],
public keys are 33 bytes SEC compressed points.
Curve arithmetic and point encoding are those of btclib.ec.
Tweak functions return None when the tweak is not a valid scalar
or when the result is not a valid key,
leaving to the caller the choice of how to proceed.
"""

import secrets
from typing import Optional, Union

from btclib.alias import Point
from btclib.ec import (
    bytes_from_point,
    libsecp256k1,
    mult,
    point_from_octets,
    secp256k1,
)
from btclib.exceptions import BTClibValueError

from hdkey.exceptions import HDKeyValueError
from hdkey.utils import Buffer, bytes_from_octets

ec = secp256k1

# size in bytes of a secp256k1 scalar
_SCALAR_SIZE = 32


def _int_from_scalar(scalar: Union[int, Buffer]) -> int:
    if isinstance(scalar, int):
        return scalar
    return int.from_bytes(bytes_from_octets(scalar, _SCALAR_SIZE), "big", signed=False)


def prv_key_is_valid(prv_key: Union[int, Buffer]) -> bool:
    "Return True if the private key is a scalar in [1, n-1]."
    return 0 < _int_from_scalar(prv_key) < ec.n


def pub_key_from_prv_key(prv_key: Union[int, Buffer]) -> bytes:
    "Return the compressed public key of a valid private key."

    q = _int_from_scalar(prv_key)
    if not 0 < q < ec.n:
        raise HDKeyValueError(f"private key not in 1..n-1: {hex(q)}")
    if libsecp256k1.is_available():
        return libsecp256k1.pubkey_from_prvkey(q)
    return bytes_from_point(mult(q))


def point_from_pub_key(pub_key: Buffer) -> Point:
    "Return the curve point of a SEC encoded public key."
    try:
        return point_from_octets(bytes_from_octets(pub_key))
    except BTClibValueError as e:
        raise HDKeyValueError(f"invalid public key: {e}") from e


def prv_key_tweak_add(prv_key: Buffer, tweak: Buffer) -> Optional[bytes]:
    """Return (tweak + prv_key) mod n as 32 bytes.

    None is returned if tweak is not lower than n
    or if the resulting scalar is zero.
    """

    t = _int_from_scalar(tweak)
    if t >= ec.n:
        return None
    q = (t + _int_from_scalar(prv_key)) % ec.n
    if q == 0:
        return None
    return q.to_bytes(_SCALAR_SIZE, "big", signed=False)


def pub_key_tweak_add(pub_key: Buffer, tweak: Buffer) -> Optional[bytes]:
    """Return the compressed point tweak*G + pub_key.

    None is returned if tweak is not lower than n
    or if the resulting point is the infinity point.
    """

    t = _int_from_scalar(tweak)
    if t >= ec.n:
        return None
    Q = point_from_pub_key(pub_key)
    R = Q if t == 0 else ec.add(mult(t), Q)
    if R[1] == 0:  # infinity point in affine coordinates
        return None
    return bytes_from_point(R)


def generate_prv_key() -> bytes:
    "Return a random valid private key from a CSPRNG."
    q = 1 + secrets.randbelow(ec.n - 1)
    return q.to_bytes(_SCALAR_SIZE, "big", signed=False)
