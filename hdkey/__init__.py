#!/usr/bin/env python3

# Copyright (C) 2023-2026 The hdkey developers
#
# This file is part of hdkey. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of hdkey including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"__init__ module for the hdkey package."

name = "hdkey"
__version__ = "2026.10.1"
__author__ = "The hdkey developers"
__author_email__ = "devs@hdkey.dev"
__copyright__ = "Copyright (C) 2023-2026 The hdkey developers"
__license__ = "MIT License"
