#!/usr/bin/env python3

# Copyright (C) The hdkey developers
#
# This file is part of hdkey. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of hdkey including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"""BIP39 mnemonic sentence bound to its entropy.

https://github.com/bitcoin/bips/blob/master/bip-0039.mediawiki.

Word lists, checksum and PBKDF2 seed stretching are provided by
the python-mnemonic package; this module wraps them in a serializable
dataclass that owns the entropy in a mutable buffer,
so that it can be wiped together with the keys derived from it.

* bits per word = bpw = 11
* **ENT** = raw entropy
* **CS** = checksum = **ENT** / 32
* **MS** = words in the mnemonic sentence = (**ENT+CS**) / bpw

+-----+----+--------+----+
| ENT | CS | ENT+CS | MS |
+=====+====+========+====+
| 128 |  4 |    132 | 12 |
+-----+----+--------+----+
| 160 |  5 |    165 | 15 |
+-----+----+--------+----+
| 192 |  6 |    198 | 18 |
+-----+----+--------+----+
| 224 |  7 |    231 | 21 |
+-----+----+--------+----+
| 256 |  8 |    264 | 24 |
+-----+----+--------+----+
"""

import functools
import secrets
from dataclasses import InitVar, dataclass, field
from typing import Tuple, Type, TypeVar

import mnemonic as python_mnemonic
from btclib import var_bytes
from btclib.alias import BinaryData
from btclib.exceptions import BTClibRuntimeError, BTClibValueError
from dataclasses_json import DataClassJsonMixin, config

from hdkey.exceptions import HDKeyRuntimeError, HDKeyTypeError, HDKeyValueError
from hdkey.utils import bytesio_from_binarydata, wipe

BITS: Tuple[int, ...] = (128, 160, 192, 224, 256)

_Mnemonic = TypeVar("_Mnemonic", bound="Mnemonic")


@functools.lru_cache()
def _wordlist(language: str) -> python_mnemonic.Mnemonic:
    if language not in python_mnemonic.Mnemonic.list_languages():
        raise HDKeyValueError(f"unknown mnemonic language: {language!r}")
    return python_mnemonic.Mnemonic(language)


def _entropy_from_phrase(phrase: str, language: str) -> bytes:
    # any whitespace separates words, ideographic space included
    words = phrase.split()
    try:
        return bytes(_wordlist(language).to_entropy(words))
    except LookupError as e:
        raise HDKeyValueError(f"invalid mnemonic word: {e}") from e
    except ValueError as e:
        raise HDKeyValueError(f"invalid mnemonic: {e}") from e


@dataclass
class Mnemonic(DataClassJsonMixin):
    entropy: bytearray = field(
        default_factory=bytearray,
        repr=False,
        metadata=config(encoder=lambda v: bytes(v).hex(), decoder=bytearray.fromhex),
    )
    language: str = "english"
    passphrase: str = field(default="", repr=False)
    phrase: str = field(default="", repr=False)
    check_validity: InitVar[bool] = True

    def __post_init__(self, check_validity: bool) -> None:
        self.entropy = bytearray(self.entropy)
        if not self.phrase and len(self.entropy) * 8 in BITS:
            self.phrase = _wordlist(self.language).to_mnemonic(bytes(self.entropy))
        if check_validity:
            self.assert_valid()

    def assert_valid(self) -> None:

        bits = self.bits()
        if bits not in BITS:
            err_msg = f"invalid number of bits for BIP39 entropy: {bits}"
            err_msg += f" not in {BITS}"
            raise HDKeyValueError(err_msg)

        if not isinstance(self.passphrase, str):
            raise HDKeyValueError("passphrase is not a string")

        entropy = _entropy_from_phrase(self.phrase, self.language)
        if entropy != self.entropy:
            raise HDKeyValueError("mnemonic phrase does not match its entropy")

    def bits(self) -> int:
        "Return the number of bits of entropy."
        return len(self.entropy) * 8

    def to_seed(self) -> bytes:
        "Return the 64 bytes BIP39 seed (PBKDF2-HMAC-SHA512, 2048 rounds)."
        return python_mnemonic.Mnemonic.to_seed(self.phrase, self.passphrase)

    def serialize(self, check_validity: bool = True) -> bytes:

        if check_validity:
            self.assert_valid()

        out = var_bytes.serialize(self.language.encode("ascii"))
        out += var_bytes.serialize(bytes(self.entropy))
        out += var_bytes.serialize(self.passphrase.encode("utf-8"))
        return out

    @classmethod
    def parse(
        cls: Type[_Mnemonic], data: BinaryData, check_validity: bool = True
    ) -> _Mnemonic:
        "Return a Mnemonic by parsing binary data."

        stream = bytesio_from_binarydata(data)
        try:
            language = var_bytes.parse(stream, forbid_zero_size=True).decode("ascii")
            entropy = bytearray(var_bytes.parse(stream))
            passphrase = var_bytes.parse(stream).decode("utf-8")
        except BTClibRuntimeError as e:
            raise HDKeyRuntimeError(f"invalid mnemonic serialization: {e}") from e
        except BTClibValueError as e:
            raise HDKeyValueError(f"invalid mnemonic serialization: {e}") from e
        return cls(entropy, language, passphrase, "", check_validity)

    @classmethod
    def generate(
        cls: Type[_Mnemonic],
        bits: int = 128,
        language: str = "english",
        passphrase: str = "",
    ) -> _Mnemonic:
        "Return a new Mnemonic from fresh CSPRNG entropy."

        if bits not in BITS:
            err_msg = f"invalid number of bits for BIP39 entropy: {bits}"
            err_msg += f" not in {BITS}"
            raise HDKeyValueError(err_msg)
        entropy = bytearray(secrets.token_bytes(bits // 8))
        return cls(entropy, language, passphrase)

    @classmethod
    def from_phrase(
        cls: Type[_Mnemonic],
        phrase: str,
        passphrase: str = "",
        language: str = "english",
    ) -> _Mnemonic:
        """Return a Mnemonic from its sentence.

        Unknown words, a wrong number of words or a checksum mismatch
        raise HDKeyValueError.
        """

        if not isinstance(phrase, str):
            raise HDKeyTypeError("mnemonic phrase is not a string")
        entropy = bytearray(_entropy_from_phrase(phrase, language))
        # the sentence is rebuilt with the canonical word separator
        return cls(entropy, language, passphrase)

    def destroy(self) -> None:
        "Wipe the entropy and forget phrase and passphrase."
        wipe(self.entropy)
        self.phrase = ""
        self.passphrase = ""

    def __str__(self) -> str:
        return self.phrase
