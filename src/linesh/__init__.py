# linesh — Line-Oriented Script Engine
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
linesh core package.

Runs newline-separated scripts where each line is either a registered
Python handler or an external program::

    from linesh import run

    run('''
        set who = world
        echo Hello ${who}
        git status
    ''')
"""
from .errors import (  # noqa: F401 (re-export)
    LineshError as LineshError,
    ProcessError as ProcessError,
    RegistrationError as RegistrationError,
    ScriptFailure as ScriptFailure,
)
from .kernel import Engine as Engine  # noqa: F401 (re-export)
from .kernel import ScriptContext as ScriptContext  # noqa: F401
from .kernel import run as run  # noqa: F401
from .menu import menu as menu  # noqa: F401
from .policies import (  # noqa: F401 (re-export)
    AbortScript as AbortScript,
    ContinueRunning as ContinueRunning,
    ExitProcess as ExitProcess,
    FailureCollector as FailureCollector,
)
from .registry import CommandRegistry as CommandRegistry  # noqa: F401
