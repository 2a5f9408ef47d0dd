#!/usr/bin/env python3

# Copyright (C) The hdkey developers
#
# This file is part of hdkey. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of hdkey including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"""Key material buffers.

Octet coercion and stream handling come from btclib.utils:
the helpers here copy caller-provided buffers into immutable bytes
before handing them to btclib, keep secrets in mutable bytearray
buffers that can be zeroed in place, and raise hdkey exceptions.
"""

from io import BytesIO
from typing import Iterable, Optional, Union

from btclib import utils
from btclib.alias import BinaryData, Octets
from btclib.exceptions import BTClibValueError

from hdkey.exceptions import HDKeyRuntimeError, HDKeyTypeError, HDKeyValueError

Buffer = Union[Octets, bytearray, memoryview]
NoneOneOrMoreInt = Optional[Union[int, Iterable[int]]]


def bytes_from_octets(octets: Buffer, out_size: NoneOneOrMoreInt = None) -> bytes:
    """Return immutable bytes from a hex-string or a bytes-like object.

    Mutable buffers are copied, so that the result does not change
    when the caller's buffer is wiped.
    """

    if isinstance(octets, (bytearray, memoryview)):
        octets = bytes(octets)
    elif not isinstance(octets, (str, bytes)):
        raise HDKeyTypeError(f"not an octet sequence: {type(octets).__name__}")

    try:
        return utils.bytes_from_octets(octets, out_size)
    except BTClibValueError as e:
        raise HDKeyValueError(str(e)) from e


def bytearray_from_octets(
    octets: Buffer, out_size: NoneOneOrMoreInt = None
) -> bytearray:
    """Return a private, mutable copy of the input octets.

    Secret material is kept in bytearray buffers owned by a single object,
    so that it can be zeroed in place when the owner is destroyed.
    """
    return bytearray(bytes_from_octets(octets, out_size))


def wipe(buffer: Optional[bytearray]) -> None:
    "Overwrite a mutable buffer with zeros."
    if buffer is not None:
        buffer[:] = bytes(len(buffer))


def bytesio_from_binarydata(stream: Union[BinaryData, bytearray]) -> BytesIO:
    "Return a BytesIO stream, also from a bytearray."
    if isinstance(stream, bytearray):
        stream = bytes(stream)
    return utils.bytesio_from_binarydata(stream)


def read_exactly(stream: BytesIO, size: int) -> bytes:
    "Read size bytes from the stream or fail."
    data = stream.read(size)
    if len(data) != size:
        err_msg = f"not enough binary data: {len(data)} bytes instead of {size}"
        raise HDKeyRuntimeError(err_msg)
    return data
