#!/usr/bin/env python3

# Copyright (C) The hdkey developers
#
# This file is part of hdkey. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of hdkey including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"""BIP32 Hierarchical Deterministic private key node.

A hierarchical deterministic wallet is a tree of private/public key
pairs derived from a single root, which is the only element requiring
backup. Here it is implemented according to BIP32
https://github.com/bitcoin/bips/blob/master/bip-0032.mediawiki,
with the BIP44/BIP45 conventions for the first levels of the tree.

The 82 bytes raw serialization of a private node is:

- [  : 4] version
- [ 4: 5] depth in the derivation path
- [ 5: 9] parent fingerprint
- [ 9:13] index
- [13:45] chain code
- [45:78] [0x00][private key]
- [78:82] checksum, i.e. hash256([:78])[:4]

Its base58 text is the Base58Check encoding of the first 78 bytes.
The 'extended' serialization appends a flag byte and,
when the flag is 1, the serialized mnemonic the node was created from.

Derived nodes are memoized in a DerivationCache:
deriving twice the same child returns the very same object.
Secret material is kept in bytearray buffers
owned by a single node and zeroed by destroy().
"""

import functools
import hmac
import json
import logging
import secrets
from typing import Any, Dict, Mapping, Optional, Type, TypeVar, Union

from btclib import base58
from btclib.alias import BinaryData, String
from btclib.hashes import hash160, hash256
from btclib.utils import hex_string

from hdkey.bip32.cache import DerivationCache, default_cache
from hdkey.bip32.ckd import CKDResult, derive_child
from hdkey.bip32.der_path import HARDENED, MAX_DEPTH, MAX_INDEX, steps_from_path
from hdkey.bip32.public import HDPublicKey
from hdkey.exceptions import HDKeyRuntimeError, HDKeyTypeError, HDKeyValueError
from hdkey.keys import (
    generate_prv_key,
    prv_key_is_valid,
    prv_key_tweak_add,
    pub_key_from_prv_key,
)
from hdkey.mnemonic import Mnemonic
from hdkey.network import (
    NETWORKS,
    Network,
    network_from_key_value,
    network_from_name,
    network_from_xprv_version,
)
from hdkey.utils import (
    Buffer,
    bytearray_from_octets,
    bytes_from_octets,
    bytesio_from_binarydata,
    read_exactly,
    wipe,
)

logger = logging.getLogger(__name__)

# seed size, in bits
MIN_ENTROPY = 128
MAX_ENTROPY = 512
SEED_KEY = b"Bitcoin seed"

_RAW_SIZE = 82
_PAYLOAD_SIZE = 78

_HDPrivateKey = TypeVar("_HDPrivateKey", bound="HDPrivateKey")

NetworkLike = Union[str, Network, None]


def _cmp(a: Union[bytes, bytearray], b: Union[bytes, bytearray]) -> int:
    return (a > b) - (a < b)


@functools.total_ordering
class HDPrivateKey:
    """BIP32 extended private key.

    The public key is computed at construction time,
    fingerprint, base58 text and public mirror are computed on first use.
    """

    def __init__(
        self,
        network: NetworkLike,
        depth: int,
        parent_fingerprint: Buffer,
        child_index: int,
        chain_code: Buffer,
        private_key: Buffer,
        mnemonic: Optional[Mnemonic] = None,
        cache: Optional[DerivationCache] = None,
        check_validity: bool = True,
    ) -> None:

        self.network = network_from_name(network)
        self.depth = depth
        self.parent_fingerprint = bytearray_from_octets(parent_fingerprint)
        self.child_index = child_index
        self.chain_code = bytearray_from_octets(chain_code)
        self.private_key = bytearray_from_octets(private_key)
        self.mnemonic = mnemonic
        self.cache = default_cache() if cache is None else cache

        self._fingerprint: Optional[bytearray] = None
        self._xprivkey: Optional[str] = None
        self._hd_public_key: Optional[HDPublicKey] = None
        self._destroyed = False

        if check_validity:
            self.assert_valid()

        self.public_key = bytearray(pub_key_from_prv_key(self.private_key))

    def __repr__(self) -> str:
        result = f"HDPrivateKey(network={self.network.name!r}"
        result += f", depth={self.depth}, child_index={self.child_index}"
        result += f", parent_fingerprint='{self.parent_fingerprint.hex()}')"
        return result

    def assert_valid(self) -> None:

        for key, size in (
            ("parent_fingerprint", 4),
            ("chain_code", 32),
            ("private_key", 32),
        ):
            value = getattr(self, key)
            if len(value) != size:
                err_msg = f"invalid {key} length: "
                err_msg += f"{len(value)} bytes instead of {size}"
                raise HDKeyValueError(err_msg)

        if not isinstance(self.depth, int) or not isinstance(self.child_index, int):
            raise HDKeyTypeError("depth and child index must be integers")
        if not 0 <= self.depth <= MAX_DEPTH:
            raise HDKeyValueError(f"invalid depth: {self.depth}")
        if not 0 <= self.child_index < MAX_INDEX:
            raise HDKeyValueError(f"invalid index: {self.child_index}")

        if self.depth == 0:
            if any(self.parent_fingerprint):
                err_msg = "zero depth with non-zero parent fingerprint: "
                err_msg += f"0x{self.parent_fingerprint.hex()}"
                raise HDKeyValueError(err_msg)
            if self.child_index != 0:
                raise HDKeyValueError(f"zero depth with non-zero index: {self.child_index}")

        if not prv_key_is_valid(self.private_key):
            raise HDKeyValueError("invalid private key not in 1..n-1")

        if self.mnemonic is not None and not isinstance(self.mnemonic, Mnemonic):
            raise HDKeyTypeError(f"invalid mnemonic type: {type(self.mnemonic).__name__}")

    # master key constructors

    @classmethod
    def from_seed(
        cls: Type[_HDPrivateKey],
        seed: Buffer,
        network: NetworkLike = "mainnet",
        cache: Optional[DerivationCache] = None,
    ) -> _HDPrivateKey:
        """Return the master key of a 128 to 512 bits seed.

        I = HMAC-SHA512(Key = "Bitcoin seed", Data = seed):
        the left half is the master private key, the right one the chain code.
        """

        seed = bytes_from_octets(seed)
        bits = len(seed) * 8
        if bits < MIN_ENTROPY:
            raise HDKeyValueError(f"too few bits for seed: {bits} in '{hex_string(seed)}'")
        if bits > MAX_ENTROPY:
            raise HDKeyValueError(f"too many bits for seed: {bits} in '{hex_string(seed)}'")

        hmac_ = hmac.new(SEED_KEY, seed, "sha512").digest()
        # only a 1 in 2^127 chance of happening
        if not prv_key_is_valid(hmac_[:32]):
            raise HDKeyValueError("invalid master private key")

        key = cls(network, 0, b"\x00" * 4, 0, hmac_[32:], hmac_[:32], cache=cache)
        logger.debug(f"Created master key {key.fingerprint().hex()} from seed")
        return key

    @classmethod
    def from_mnemonic(
        cls: Type[_HDPrivateKey],
        mnemonic: Union[Mnemonic, str],
        network: NetworkLike = "mainnet",
        cache: Optional[DerivationCache] = None,
    ) -> _HDPrivateKey:
        "Return the master key of a BIP39 mnemonic, keeping the mnemonic."

        if isinstance(mnemonic, str):
            mnemonic = Mnemonic.from_phrase(mnemonic)
        elif not isinstance(mnemonic, Mnemonic):
            raise HDKeyTypeError(f"invalid mnemonic type: {type(mnemonic).__name__}")

        key = cls.from_seed(mnemonic.to_seed(), network, cache)
        key.mnemonic = mnemonic
        return key

    @classmethod
    def from_key(
        cls: Type[_HDPrivateKey],
        key: Buffer,
        entropy: Buffer,
        network: NetworkLike = "mainnet",
        cache: Optional[DerivationCache] = None,
    ) -> _HDPrivateKey:
        "Return a master key from a private key and a 32 bytes chain code."

        key = bytes_from_octets(key, 32)
        entropy = bytes_from_octets(entropy, 32)
        if not prv_key_is_valid(key):
            raise HDKeyValueError("invalid private key not in 1..n-1")

        master = cls(network, 0, b"\x00" * 4, 0, entropy, key, cache=cache)
        logger.debug(f"Created master key {master.fingerprint().hex()} from key")
        return master

    @classmethod
    def generate(
        cls: Type[_HDPrivateKey],
        network: NetworkLike = "mainnet",
        cache: Optional[DerivationCache] = None,
    ) -> _HDPrivateKey:
        "Return a random master key."
        return cls.from_key(generate_prv_key(), secrets.token_bytes(32), network, cache)

    # lazily computed values

    def _require_alive(self) -> None:
        if self._destroyed:
            raise HDKeyRuntimeError("destroyed HD private key")

    def is_destroyed(self) -> bool:
        return self._destroyed

    def fingerprint(self) -> bytearray:
        "Return the first 4 bytes of hash160 of the public key."
        self._require_alive()
        if self._fingerprint is None:
            self._fingerprint = bytearray(hash160(bytes(self.public_key))[:4])
        return self._fingerprint

    def xprivkey(self) -> str:
        "Return the (cached) base58 serialization."
        if self._xprivkey is None:
            self._xprivkey = self.b58encode()
        return self._xprivkey

    def hd_public_key(self) -> HDPublicKey:
        "Return the (cached) public mirror of this node."
        self._require_alive()
        if self._hd_public_key is None:
            self._hd_public_key = HDPublicKey(
                network=self.network,
                depth=self.depth,
                parent_fingerprint=self.parent_fingerprint,
                child_index=self.child_index,
                chain_code=self.chain_code,
                public_key=self.public_key,
                cache=self.cache,
            )
        return self._hd_public_key

    def xpubkey(self) -> str:
        return self.hd_public_key().xpubkey()

    # derivation

    def _ckd(self, index: int) -> CKDResult:
        "Private parent key to private child key, without side effects."

        if index >= HARDENED:
            data = b"\x00" + self.private_key
        else:
            data = bytes(self.public_key)
        data += index.to_bytes(4, byteorder="big", signed=False)

        hmac_ = hmac.new(self.chain_code, data, "sha512").digest()
        prv_key = prv_key_tweak_add(self.private_key, hmac_[:32])
        if prv_key is None:
            return CKDResult(retry_index=index + 1)

        child = type(self)(
            network=self.network,
            depth=self.depth + 1,
            parent_fingerprint=self.fingerprint(),
            child_index=index,
            chain_code=hmac_[32:],
            private_key=prv_key,
            cache=self.cache,
        )
        return CKDResult(child=child)

    def derive(self, index: Union[int, str], hardened: bool = False) -> "HDPrivateKey":
        """Return the child at index.

        Indexes not lower than HARDENED are hardened anyway,
        otherwise hardened=True adds HARDENED to the index.
        A string index is handled as a derivation path.
        """

        if isinstance(index, str):
            return self.derive_path(index)
        if isinstance(index, bool) or not isinstance(index, int):
            raise HDKeyTypeError(f"invalid index type: {type(index).__name__}")

        self._require_alive()
        if index < 0:
            raise HDKeyValueError(f"invalid index: {index}")
        if index < HARDENED and hardened:
            index += HARDENED
        if not 0 <= index < MAX_INDEX:
            raise HDKeyValueError(f"invalid index: {index}")
        if self.depth >= MAX_DEPTH:
            raise HDKeyValueError(f"depth greater than {MAX_DEPTH}")

        return derive_child(
            self.cache,
            self.network.xprv58,
            self.public_key,
            self.chain_code,
            index,
            self._ckd,
        )

    def derive_path(self, path: str) -> "HDPrivateKey":
        """Derive a key across a path spanning multiple depth levels.

        Valid path examples: "m/44'/0'/1h/0/10", "0/1", "m", "".
        """
        key = self
        for index, hardened in steps_from_path(path):
            key = key.derive(index, hardened)
        return key

    def derive_account44(self, account_index: int) -> "HDPrivateKey":
        "Return the BIP44 account key m/44'/coin_type'/account_index'."
        if not isinstance(account_index, int) or isinstance(account_index, bool):
            raise HDKeyTypeError("account index must be an integer")
        if not self.is_master():
            raise HDKeyValueError("cannot derive account index from a non-master key")
        return (
            self.derive(44, True)
            .derive(self.network.coin_type, True)
            .derive(account_index, True)
        )

    def derive_purpose45(self) -> "HDPrivateKey":
        "Return the BIP45 purpose key m/45'."
        if not self.is_master():
            raise HDKeyValueError("cannot derive purpose 45 from a non-master key")
        return self.derive(45, True)

    def is_master(self) -> bool:
        return (
            self.depth == 0 and self.child_index == 0 and not any(self.parent_fingerprint)
        )

    def is_account44(self, account_index: Optional[int] = None) -> bool:
        "Return True if the key is (most likely) a BIP44 account key."
        if account_index is not None and self.child_index != HARDENED + account_index:
            return False
        return self.depth == 3 and self.child_index >= HARDENED

    def is_purpose45(self) -> bool:
        return self.depth == 1 and self.child_index == HARDENED + 45

    def is_hardened(self) -> bool:
        return self.child_index >= HARDENED

    # serialization

    def serialize(self, network: NetworkLike = None) -> bytes:
        "Return the 82 bytes raw serialization."

        self._require_alive()
        network = self.network if network is None else network_from_name(network)
        payload = b"".join(
            [
                network.bip32_prv,
                self.depth.to_bytes(1, byteorder="big", signed=False),
                self.parent_fingerprint,
                self.child_index.to_bytes(4, byteorder="big", signed=False),
                self.chain_code,
                b"\x00",
                self.private_key,
            ]
        )
        return payload + hash256(payload)[:4]

    def b58encode(self, network: NetworkLike = None) -> str:
        payload = self.serialize(network)[:_PAYLOAD_SIZE]
        return base58.b58encode(payload).decode("ascii")

    @classmethod
    def parse(
        cls: Type[_HDPrivateKey],
        data: BinaryData,
        cache: Optional[DerivationCache] = None,
    ) -> _HDPrivateKey:
        """Return an HDPrivateKey by parsing 82 bytes from binary data.

        The checksum is verified first, then the network is looked up
        from the version, then the node is validated.
        """

        stream = bytesio_from_binarydata(data)
        raw = read_exactly(stream, _RAW_SIZE)

        payload, checksum_ = raw[:_PAYLOAD_SIZE], raw[_PAYLOAD_SIZE:]
        expected = hash256(payload)[:4]
        if checksum_ != expected:
            err_msg = f"invalid checksum: 0x{checksum_.hex()}"
            err_msg += f" instead of 0x{expected.hex()}"
            raise HDKeyValueError(err_msg)

        network = network_from_xprv_version(payload[:4])

        if payload[45] != 0:
            err_msg = f"invalid private key prefix: 0x{payload[45:46].hex()}"
            raise HDKeyValueError(err_msg)

        return cls(
            network=network,
            depth=payload[4],
            parent_fingerprint=payload[5:9],
            child_index=int.from_bytes(payload[9:13], byteorder="big", signed=False),
            chain_code=payload[13:45],
            private_key=payload[46:78],
            cache=cache,
        )

    @classmethod
    def from_raw(
        cls: Type[_HDPrivateKey], raw: Buffer, cache: Optional[DerivationCache] = None
    ) -> _HDPrivateKey:
        raw = bytes_from_octets(raw)
        if len(raw) != _RAW_SIZE:
            err_msg = f"invalid raw length: {len(raw)} bytes instead of {_RAW_SIZE}"
            raise HDKeyValueError(err_msg)
        return cls.parse(raw, cache)

    @classmethod
    def from_base58(
        cls: Type[_HDPrivateKey], xkey: String, cache: Optional[DerivationCache] = None
    ) -> _HDPrivateKey:

        if isinstance(xkey, str):
            xkey = xkey.strip()
        try:
            payload = base58.b58decode(xkey, _PAYLOAD_SIZE)
        except ValueError as e:
            raise HDKeyValueError(f"invalid base58 extended key: {e}") from e
        key = cls.parse(payload + hash256(payload)[:4], cache)
        key._xprivkey = xkey if isinstance(xkey, str) else xkey.decode("ascii")
        return key

    def serialize_extended(self, network: NetworkLike = None) -> bytes:
        "Return the raw serialization followed by the optional mnemonic."

        out = self.serialize(network)
        if self.mnemonic is None:
            return out + b"\x00"
        return out + b"\x01" + self.mnemonic.serialize()

    @classmethod
    def from_extended(
        cls: Type[_HDPrivateKey],
        data: BinaryData,
        cache: Optional[DerivationCache] = None,
    ) -> _HDPrivateKey:

        stream = bytesio_from_binarydata(data)
        key = cls.parse(stream, cache)
        flag = read_exactly(stream, 1)[0]
        if flag == 1:
            key.mnemonic = Mnemonic.parse(stream)
        elif flag != 0:
            raise HDKeyValueError(f"invalid mnemonic flag: {flag}")
        return key

    def to_dict(self) -> Dict[str, Any]:
        return {
            "xprivkey": self.xprivkey(),
            "mnemonic": None if self.mnemonic is None else self.mnemonic.to_dict(),
        }

    @classmethod
    def from_dict(
        cls: Type[_HDPrivateKey],
        dict_: Mapping[str, Any],
        cache: Optional[DerivationCache] = None,
    ) -> _HDPrivateKey:

        xprivkey = dict_.get("xprivkey")
        if not xprivkey:
            raise HDKeyValueError("missing xprivkey")
        key = cls.from_base58(xprivkey, cache)
        if dict_.get("mnemonic"):
            key.mnemonic = Mnemonic.from_dict(dict_["mnemonic"])
        return key

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(
        cls: Type[_HDPrivateKey], data: str, cache: Optional[DerivationCache] = None
    ) -> _HDPrivateKey:
        return cls.from_dict(json.loads(data), cache)

    @staticmethod
    def is_extended(data: Any) -> bool:
        "Return True if data looks like a base58 extended private key."
        if not isinstance(data, str):
            return False
        return any(data.startswith(net.xprv58) for net in NETWORKS.values())

    @staticmethod
    def has_prefix(data: Any) -> Optional[str]:
        "Return the network name of a raw extended private key version, if any."
        if not isinstance(data, (bytes, bytearray)) or len(data) < 4:
            return None
        network = network_from_key_value("bip32_prv", bytes(data[:4]))
        return None if network is None else network.name

    # lifecycle

    def destroy(self, destroy_public: bool = False) -> None:
        """Zero the key material in place and forget cached values.

        The attached mnemonic is destroyed too,
        the public mirror only if destroy_public is True.
        """

        wipe(self.parent_fingerprint)
        wipe(self.chain_code)
        wipe(self.private_key)
        wipe(self.public_key)
        if self._fingerprint is not None:
            wipe(self._fingerprint)
            self._fingerprint = None
        self.depth = 0
        self.child_index = 0

        if self._hd_public_key is not None:
            if destroy_public:
                self._hd_public_key.destroy()
            self._hd_public_key = None

        self._xprivkey = None

        if self.mnemonic is not None:
            self.mnemonic.destroy()
            self.mnemonic = None

        self._destroyed = True
        logger.debug("Destroyed HD private key")

    # comparison

    def equal(self, other: object) -> bool:
        if not isinstance(other, HDPrivateKey):
            return False
        return (
            self.network.bip32_prv == other.network.bip32_prv
            and self.depth == other.depth
            and self.parent_fingerprint == other.parent_fingerprint
            and self.child_index == other.child_index
            and self.chain_code == other.chain_code
            and self.private_key == other.private_key
        )

    def compare(self, other: object) -> int:
        """Return a negative, zero, or positive integer.

        Keys are ordered by depth, parent fingerprint, index,
        chain code, and private key; anything else sorts first.
        """
        if not isinstance(other, HDPrivateKey):
            return 1
        return (
            self.depth - other.depth
            or _cmp(self.parent_fingerprint, other.parent_fingerprint)
            or self.child_index - other.child_index
            or _cmp(self.chain_code, other.chain_code)
            or _cmp(self.private_key, other.private_key)
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HDPrivateKey):
            return NotImplemented
        return self.equal(other)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, HDPrivateKey):
            return NotImplemented
        return self.compare(other) < 0

    def __hash__(self) -> int:
        return hash(
            (
                bytes(self.network.bip32_prv),
                self.depth,
                bytes(self.parent_fingerprint),
                self.child_index,
                bytes(self.chain_code),
                bytes(self.public_key),
            )
        )
