#!/usr/bin/env python3

# Copyright (C) The hdkey developers
#
# This file is part of hdkey. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of hdkey including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"""Exception classes.

These are only meant to discriminate between Exceptions being raised
by hdkey from those raised by other codebase.

They derive from the btclib exceptions, which in turn derive from
the regular ValueError, TypeError, and RuntimeError:
users are usually better off just dealing with the latter.
"""

from btclib.exceptions import BTClibRuntimeError, BTClibTypeError, BTClibValueError


class HDKeyValueError(BTClibValueError):
    pass


class HDKeyTypeError(BTClibTypeError):
    pass


class HDKeyRuntimeError(BTClibRuntimeError):
    pass
