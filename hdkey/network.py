#!/usr/bin/env python3

# Copyright (C) The hdkey developers
#
# This file is part of hdkey. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of hdkey including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"""Network constants and associated functions.

Each network is described by a json file in the _data folder
and loaded at import time in the NETWORKS dictionary,
which is scanned in insertion order by the lookup functions.
"""

import json
from dataclasses import dataclass
from os import path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Type, TypeVar, Union

from btclib.alias import Octets

from hdkey.exceptions import HDKeyTypeError, HDKeyValueError
from hdkey.utils import bytes_from_octets

_KEY_SIZE: List[Tuple[str, int]] = [
    ("bip32_prv", 4),
    ("bip32_pub", 4),
]

_Network = TypeVar("_Network", bound="Network")


@dataclass(frozen=True)
class Network:
    name: str

    # BIP32 extended private key version, e.g. "xprv..."
    bip32_prv: bytes
    # BIP32 extended public key version, e.g. "xpub..."
    bip32_pub: bytes

    # leading characters of the base58 encoded extended keys
    xprv58: str
    xpub58: str

    # BIP44 "m / 44h / coin_type h"
    coin_type: int

    def __init__(
        self,
        name: str,
        bip32_prv: Octets,
        bip32_pub: Octets,
        xprv58: str,
        xpub58: str,
        coin_type: int,
        check_validity: bool = True,
    ) -> None:

        object.__setattr__(self, "name", name)
        object.__setattr__(self, "bip32_prv", bytes_from_octets(bip32_prv))
        object.__setattr__(self, "bip32_pub", bytes_from_octets(bip32_pub))
        object.__setattr__(self, "xprv58", xprv58)
        object.__setattr__(self, "xpub58", xpub58)
        object.__setattr__(self, "coin_type", coin_type)

        if check_validity:
            self.assert_valid()

    def to_dict(self, check_validity: bool = True) -> Dict[str, Any]:

        if check_validity:
            self.assert_valid()

        return {
            "name": self.name,
            "bip32_prv": self.bip32_prv.hex(),
            "bip32_pub": self.bip32_pub.hex(),
            "xprv58": self.xprv58,
            "xpub58": self.xpub58,
            "coin_type": self.coin_type,
        }

    @classmethod
    def from_dict(
        cls: Type[_Network], dict_: Mapping[str, Any], check_validity: bool = True
    ) -> _Network:

        return cls(
            dict_["name"],
            dict_["bip32_prv"],
            dict_["bip32_pub"],
            dict_["xprv58"],
            dict_["xpub58"],
            dict_["coin_type"],
            check_validity,
        )

    def assert_valid(self) -> None:

        if not isinstance(self.name, str) or not self.name:
            raise HDKeyValueError(f"invalid network name: {self.name!r}")

        for key, size in _KEY_SIZE:
            value = bytes(getattr(self, key))
            if len(value) != size:
                err_msg = f"invalid {key} length: "
                err_msg += f"{len(value)} bytes"
                err_msg += f" instead of {size}"
                raise HDKeyValueError(err_msg)

        if self.bip32_prv == self.bip32_pub:
            raise HDKeyValueError("private and public versions must differ")

        if not isinstance(self.coin_type, int):
            raise HDKeyTypeError("coin type is not an instance of int")
        if not 0 <= self.coin_type < 0x80000000:
            raise HDKeyValueError(f"invalid coin type: {self.coin_type}")


NETWORKS: Dict[str, Network] = {}
datadir = path.join(path.dirname(__file__), "_data")
for net in ("mainnet", "testnet", "regtest"):
    filename = path.join(datadir, net + ".json")
    with open(filename, "r", encoding="ascii") as f:
        NETWORKS[net] = Network.from_dict(json.load(f))


def network_from_name(network: Union[str, Network, None] = None) -> Network:
    """Return the Network from its name.

    A Network instance goes untouched, None is the default mainnet.
    """

    if network is None:
        return NETWORKS["mainnet"]
    if isinstance(network, Network):
        return network
    if not isinstance(network, str):
        raise HDKeyTypeError(f"invalid network type: {type(network).__name__}")
    name = network.strip().lower()
    if name not in NETWORKS:
        raise HDKeyValueError(f"unknown network: {network}")
    return NETWORKS[name]


def network_from_key_value(key: str, prefix: Any) -> Optional[Network]:
    """Return the first Network matching the (key, value) pair.

    Warning: when used on 'regtest' it returns 'testnet',
    which is not a problem as long as it is used for
    BIP32 extended keys because the two networks share the same prefixes.
    """
    for network in NETWORKS.values():
        if getattr(network, key) == prefix:
            return network
    return None


def network_from_xprv_version(version: Octets) -> Network:
    "Return the Network of an extended private key version."

    version = bytes_from_octets(version, 4)
    network = network_from_key_value("bip32_prv", version)
    if network is None:
        err_msg = f"unknown extended private key version: 0x{version.hex()}"
        raise HDKeyValueError(err_msg)
    return network


def network_from_xpub_version(version: Octets) -> Network:
    "Return the Network of an extended public key version."

    version = bytes_from_octets(version, 4)
    network = network_from_key_value("bip32_pub", version)
    if network is None:
        err_msg = f"unknown extended public key version: 0x{version.hex()}"
        raise HDKeyValueError(err_msg)
    return network
