from __future__ import annotations

from typing import Literal

# Overwritten during packaging so production images bake the build flavor into
# the installed node. Local development defaults to "dev".
BUILD_FLAVOR: Literal["prod", "dev", "test"] = "dev"
