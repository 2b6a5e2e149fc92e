# linesh — Line-Oriented Script Engine
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Directory stack for a script run.

The head is the working directory for filesystem built-ins and for
every external program the script starts. The stack is never empty.
"""

from __future__ import annotations

import os


class DirectoryStack:
    """Ordered working directories; index 0 is the current one."""

    def __init__(self, start: str | None = None):
        self._dirs: list[str] = [start if start is not None else os.getcwd()]

    def __len__(self) -> int:
        return len(self._dirs)

    def __iter__(self):
        return iter(list(self._dirs))

    def __repr__(self) -> str:
        return f"DirectoryStack({self._dirs!r})"

    def getwd(self) -> str:
        """Return the current directory (stack head)."""
        return self._dirs[0]

    def resolve(self, path: str) -> str:
        """Resolve path against the head; absolute paths win."""
        return os.path.normpath(os.path.join(self._dirs[0], path))

    def cd(self, path: str) -> str:
        """Replace the head with path resolved against it."""
        self._dirs[0] = self.resolve(path)
        return self._dirs[0]

    def pushd(self, path: str) -> str:
        """Push path (resolved against the head) as the new head."""
        self._dirs.insert(0, self.resolve(path))
        return self._dirs[0]

    def popd(self) -> str:
        """Drop the head unless it is the last entry."""
        if len(self._dirs) > 1:
            self._dirs.pop(0)
        return self._dirs[0]
