#!/usr/bin/env python3

# Copyright (C) The hdkey developers
#
# This file is part of hdkey. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of hdkey including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"Shared pytest fixtures."

import pytest

from hdkey.bip32.cache import default_cache


@pytest.fixture(autouse=True)
def clear_default_cache() -> None:
    default_cache().clear()
