#!/usr/bin/env python3

# Copyright (C) The hdkey developers
#
# This file is part of hdkey. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of hdkey including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"""BIP32 extended public key node.

The public mirror of an HDPrivateKey: same position in the tree,
same chain code, compressed public key instead of the private one.
Only normal (non-hardened) children can be derived from it:

    K_i = point(IL) + K_par

The 82 bytes raw serialization is:

- [  : 4] version
- [ 4: 5] depth in the derivation path
- [ 5: 9] parent fingerprint
- [ 9:13] index
- [13:45] chain code
- [45:78] compressed public key
- [78:82] checksum
"""

import functools
import hmac
import json
from typing import Any, Dict, Mapping, Optional, Type, TypeVar, Union

from btclib import base58
from btclib.alias import BinaryData, String
from btclib.hashes import hash160, hash256

from hdkey.bip32.cache import DerivationCache, default_cache
from hdkey.bip32.ckd import CKDResult, derive_child
from hdkey.bip32.der_path import HARDENED, MAX_DEPTH, MAX_INDEX, steps_from_path
from hdkey.exceptions import HDKeyRuntimeError, HDKeyTypeError, HDKeyValueError
from hdkey.keys import point_from_pub_key, pub_key_tweak_add
from hdkey.network import Network, network_from_name, network_from_xpub_version
from hdkey.utils import (
    Buffer,
    bytearray_from_octets,
    bytes_from_octets,
    bytesio_from_binarydata,
    read_exactly,
    wipe,
)

_RAW_SIZE = 82
_PAYLOAD_SIZE = 78

_HDPublicKey = TypeVar("_HDPublicKey", bound="HDPublicKey")


def _cmp(a: Union[bytes, bytearray], b: Union[bytes, bytearray]) -> int:
    return (a > b) - (a < b)


@functools.total_ordering
class HDPublicKey:
    """BIP32 extended public key.

    Byte buffers are private copies,
    zeroed in place by destroy().
    """

    def __init__(
        self,
        network: Union[str, Network, None],
        depth: int,
        parent_fingerprint: Buffer,
        child_index: int,
        chain_code: Buffer,
        public_key: Buffer,
        cache: Optional[DerivationCache] = None,
        check_validity: bool = True,
    ) -> None:

        self.network = network_from_name(network)
        self.depth = depth
        self.parent_fingerprint = bytearray_from_octets(parent_fingerprint)
        self.child_index = child_index
        self.chain_code = bytearray_from_octets(chain_code)
        self.public_key = bytearray_from_octets(public_key)
        self.cache = default_cache() if cache is None else cache

        self._fingerprint: Optional[bytearray] = None
        self._xpubkey: Optional[str] = None
        self._destroyed = False

        if check_validity:
            self.assert_valid()

    def __repr__(self) -> str:
        result = f"HDPublicKey(network={self.network.name!r}"
        result += f", depth={self.depth}, child_index={self.child_index}"
        result += f", public_key='{self.public_key.hex()}')"
        return result

    def assert_valid(self) -> None:

        for key, size in (
            ("parent_fingerprint", 4),
            ("chain_code", 32),
            ("public_key", 33),
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

        if self.public_key[0] not in (2, 3):
            err_msg = "invalid public key prefix not in (0x02, 0x03): "
            err_msg += f"0x{self.public_key[:1].hex()}"
            raise HDKeyValueError(err_msg)
        point_from_pub_key(self.public_key)

    def _require_alive(self) -> None:
        if self._destroyed:
            raise HDKeyRuntimeError("destroyed HD public key")

    def is_destroyed(self) -> bool:
        return self._destroyed

    def fingerprint(self) -> bytearray:
        "Return the first 4 bytes of hash160 of the public key."
        self._require_alive()
        if self._fingerprint is None:
            self._fingerprint = bytearray(hash160(bytes(self.public_key))[:4])
        return self._fingerprint

    def is_master(self) -> bool:
        return (
            self.depth == 0 and self.child_index == 0 and not any(self.parent_fingerprint)
        )

    def is_hardened(self) -> bool:
        return self.child_index >= HARDENED

    def serialize(self, network: Union[str, Network, None] = None) -> bytes:
        "Return the 82 bytes raw serialization."

        self._require_alive()
        network = self.network if network is None else network_from_name(network)
        payload = b"".join(
            [
                network.bip32_pub,
                self.depth.to_bytes(1, byteorder="big", signed=False),
                self.parent_fingerprint,
                self.child_index.to_bytes(4, byteorder="big", signed=False),
                self.chain_code,
                self.public_key,
            ]
        )
        return payload + hash256(payload)[:4]

    def b58encode(self, network: Union[str, Network, None] = None) -> str:
        payload = self.serialize(network)[:_PAYLOAD_SIZE]
        return base58.b58encode(payload).decode("ascii")

    def xpubkey(self) -> str:
        "Return the (cached) base58 serialization."
        if self._xpubkey is None:
            self._xpubkey = self.b58encode()
        return self._xpubkey

    @classmethod
    def parse(
        cls: Type[_HDPublicKey],
        data: BinaryData,
        cache: Optional[DerivationCache] = None,
    ) -> _HDPublicKey:
        "Return an HDPublicKey by parsing 82 bytes from binary data."

        stream = bytesio_from_binarydata(data)
        raw = read_exactly(stream, _RAW_SIZE)

        payload, checksum_ = raw[:_PAYLOAD_SIZE], raw[_PAYLOAD_SIZE:]
        expected = hash256(payload)[:4]
        if checksum_ != expected:
            err_msg = f"invalid checksum: 0x{checksum_.hex()}"
            err_msg += f" instead of 0x{expected.hex()}"
            raise HDKeyValueError(err_msg)

        return cls(
            network=network_from_xpub_version(payload[:4]),
            depth=payload[4],
            parent_fingerprint=payload[5:9],
            child_index=int.from_bytes(payload[9:13], byteorder="big", signed=False),
            chain_code=payload[13:45],
            public_key=payload[45:78],
            cache=cache,
        )

    @classmethod
    def from_raw(
        cls: Type[_HDPublicKey], raw: Buffer, cache: Optional[DerivationCache] = None
    ) -> _HDPublicKey:
        raw = bytes_from_octets(raw)
        if len(raw) != _RAW_SIZE:
            err_msg = f"invalid raw length: {len(raw)} bytes instead of {_RAW_SIZE}"
            raise HDKeyValueError(err_msg)
        return cls.parse(raw, cache)

    @classmethod
    def from_base58(
        cls: Type[_HDPublicKey], xkey: String, cache: Optional[DerivationCache] = None
    ) -> _HDPublicKey:

        if isinstance(xkey, str):
            xkey = xkey.strip()
        try:
            payload = base58.b58decode(xkey, _PAYLOAD_SIZE)
        except ValueError as e:
            raise HDKeyValueError(f"invalid base58 extended key: {e}") from e
        key = cls.parse(payload + hash256(payload)[:4], cache)
        key._xpubkey = xkey if isinstance(xkey, str) else xkey.decode("ascii")
        return key

    def to_dict(self) -> Dict[str, Any]:
        return {"xpubkey": self.xpubkey()}

    @classmethod
    def from_dict(
        cls: Type[_HDPublicKey],
        dict_: Mapping[str, Any],
        cache: Optional[DerivationCache] = None,
    ) -> _HDPublicKey:

        xpubkey = dict_.get("xpubkey")
        if not xpubkey:
            raise HDKeyValueError("missing xpubkey")
        return cls.from_base58(xpubkey, cache)

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(
        cls: Type[_HDPublicKey], data: str, cache: Optional[DerivationCache] = None
    ) -> _HDPublicKey:
        return cls.from_dict(json.loads(data), cache)

    def _ckd(self, index: int) -> CKDResult:

        data = bytes(self.public_key) + index.to_bytes(4, byteorder="big", signed=False)
        hmac_ = hmac.new(self.chain_code, data, "sha512").digest()
        pub_key = pub_key_tweak_add(self.public_key, hmac_[:32])
        if pub_key is None:
            return CKDResult(retry_index=index + 1)

        child = type(self)(
            network=self.network,
            depth=self.depth + 1,
            parent_fingerprint=self.fingerprint(),
            child_index=index,
            chain_code=hmac_[32:],
            public_key=pub_key,
            cache=self.cache,
        )
        return CKDResult(child=child)

    def derive(self, index: Union[int, str], hardened: bool = False) -> "HDPublicKey":
        """Return the normal child at index.

        A string index is handled as a derivation path.
        """

        if isinstance(index, str):
            return self.derive_path(index)
        if isinstance(index, bool) or not isinstance(index, int):
            raise HDKeyTypeError(f"invalid index type: {type(index).__name__}")

        self._require_alive()
        if hardened or index >= HARDENED:
            raise HDKeyValueError("invalid hardened derivation from public key")
        if index < 0:
            raise HDKeyValueError(f"invalid index: {index}")
        if self.depth >= MAX_DEPTH:
            raise HDKeyValueError(f"depth greater than {MAX_DEPTH}")

        return derive_child(
            self.cache,
            self.network.xpub58,
            self.public_key,
            self.chain_code,
            index,
            self._ckd,
        )

    def derive_path(self, path: str) -> "HDPublicKey":
        key = self
        for index, hardened in steps_from_path(path):
            key = key.derive(index, hardened)
        return key

    def equal(self, other: object) -> bool:
        if not isinstance(other, HDPublicKey):
            return False
        return (
            self.network.bip32_pub == other.network.bip32_pub
            and self.depth == other.depth
            and self.parent_fingerprint == other.parent_fingerprint
            and self.child_index == other.child_index
            and self.chain_code == other.chain_code
            and self.public_key == other.public_key
        )

    def compare(self, other: object) -> int:
        if not isinstance(other, HDPublicKey):
            return 1
        return (
            self.depth - other.depth
            or _cmp(self.parent_fingerprint, other.parent_fingerprint)
            or self.child_index - other.child_index
            or _cmp(self.chain_code, other.chain_code)
            or _cmp(self.public_key, other.public_key)
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HDPublicKey):
            return NotImplemented
        return self.equal(other)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, HDPublicKey):
            return NotImplemented
        return self.compare(other) < 0

    def __hash__(self) -> int:
        return hash(
            (
                bytes(self.network.bip32_pub),
                self.depth,
                bytes(self.parent_fingerprint),
                self.child_index,
                bytes(self.chain_code),
                bytes(self.public_key),
            )
        )

    def destroy(self) -> None:
        "Zero the key material in place."
        wipe(self.parent_fingerprint)
        wipe(self.chain_code)
        wipe(self.public_key)
        if self._fingerprint is not None:
            wipe(self._fingerprint)
            self._fingerprint = None
        self.depth = 0
        self.child_index = 0
        self._xpubkey = None
        self._destroyed = True
