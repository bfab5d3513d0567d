# SPDX-License-Identifier: Apache-2.0
"""AI translation engine for website UI strings and blog posts."""

__version__ = "0.1.0"
