#!/usr/bin/env python3

# Copyright (C) The hdkey developers
#
# This file is part of hdkey. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of hdkey including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"Tests for the `hdkey.keys` module."

import pytest
from btclib.ec import bytes_from_point, mult, secp256k1

from hdkey.exceptions import HDKeyValueError
from hdkey.keys import (
    generate_prv_key,
    point_from_pub_key,
    prv_key_is_valid,
    prv_key_tweak_add,
    pub_key_from_prv_key,
    pub_key_tweak_add,
)

ec = secp256k1

GX = 0x79BE667EF9DCBBAC55A06295CE870B07029BFCDB2DCE28D959F2815B16F81798
G2X = 0xC6047F9441ED7D6D3045406E95C07CD85C778E4B8CEF3CA7ABAC09B95C709EE5
G2Y = 0x1AE168FEA63DC339A3C58419466CEAEEF7F632653266D0E1236431A950CFE52A


def test_prv_key_is_valid() -> None:
    assert not prv_key_is_valid(0)
    assert prv_key_is_valid(1)
    assert prv_key_is_valid(ec.n - 1)
    assert not prv_key_is_valid(ec.n)
    assert not prv_key_is_valid(b"\x00" * 32)
    assert prv_key_is_valid(b"\x00" * 31 + b"\x01")
    assert prv_key_is_valid(bytearray(b"\x00" * 31 + b"\x01"))
    assert not prv_key_is_valid(b"\xff" * 32)

    with pytest.raises(HDKeyValueError, match="invalid size: "):
        prv_key_is_valid(b"\x01" * 31)


def test_pub_key_from_prv_key() -> None:
    assert pub_key_from_prv_key(1).hex() == "02" + f"{GX:064x}"
    assert pub_key_from_prv_key(ec.n - 1).hex() == "03" + f"{GX:064x}"
    assert pub_key_from_prv_key((2).to_bytes(32, "big")).hex() == "02" + f"{G2X:064x}"
    assert pub_key_from_prv_key(7) == bytes_from_point(mult(7))

    for invalid_prv_key in (0, ec.n, b"\x00" * 32):
        with pytest.raises(HDKeyValueError, match="private key not in 1..n-1: "):
            pub_key_from_prv_key(invalid_prv_key)


def test_point_from_pub_key() -> None:
    assert point_from_pub_key(pub_key_from_prv_key(1)) == ec.G
    assert point_from_pub_key(bytearray(pub_key_from_prv_key(2))) == (G2X, G2Y)
    assert point_from_pub_key("02" + f"{G2X:064x}") == (G2X, G2Y)

    # x-coordinate not lower than p
    with pytest.raises(HDKeyValueError, match="invalid public key: "):
        point_from_pub_key("02" + "ff" * 32)
    with pytest.raises(HDKeyValueError, match="invalid public key: "):
        point_from_pub_key(b"\x05" + pub_key_from_prv_key(1)[1:])
    with pytest.raises(HDKeyValueError, match="invalid public key: "):
        point_from_pub_key(pub_key_from_prv_key(1)[:32])


def test_tweak_add() -> None:
    one = (1).to_bytes(32, "big")
    n_minus_1 = (ec.n - 1).to_bytes(32, "big")
    n = ec.n.to_bytes(32, "big")

    assert prv_key_tweak_add(one, one) == (2).to_bytes(32, "big")
    assert prv_key_tweak_add(n_minus_1, (2).to_bytes(32, "big")) == one
    # zero result
    assert prv_key_tweak_add(one, n_minus_1) is None
    # tweak not lower than n
    assert prv_key_tweak_add(one, n) is None

    pub_one = pub_key_from_prv_key(1)
    assert pub_key_tweak_add(pub_one, one) == pub_key_from_prv_key(2)
    assert pub_key_tweak_add(pub_one, b"\x00" * 32) == pub_one
    # infinity result
    assert pub_key_tweak_add(pub_one, n_minus_1) is None
    # tweak not lower than n
    assert pub_key_tweak_add(pub_one, n) is None


def test_tweak_add_matches_private_and_public() -> None:
    prv_key = (0xDEADBEEF).to_bytes(32, "big")
    tweak = (0xC0FFEE).to_bytes(32, "big")
    child_prv_key = prv_key_tweak_add(prv_key, tweak)
    assert child_prv_key is not None
    child_pub_key = pub_key_tweak_add(pub_key_from_prv_key(prv_key), tweak)
    assert child_pub_key == pub_key_from_prv_key(child_prv_key)


def test_generate_prv_key() -> None:
    prv_key = generate_prv_key()
    assert len(prv_key) == 32
    assert prv_key_is_valid(prv_key)
    assert generate_prv_key() != prv_key
