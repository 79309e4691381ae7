"""Invoke helpers — call sync or async collaborators uniformly.

User lookup, password verification, and credential issuance can each be
a plain ``def`` or an ``async def``. Anything that calls one goes through
this helper so the sync/async check lives in exactly one place.

Usage::

    from loginguard._internal.invoke import invoke

    user = await invoke(lookup_user, username)
"""

import inspect
from typing import Any


async def invoke(func: Any, *args: Any, **kwargs: Any) -> Any:
    """Call a collaborator and await the result if it's awaitable.

    Works with both sync and async callables::

        # sync: returns immediately, no await needed
        def lookup_user(username):
            return USERS.get(username)

        # async: returns coroutine, awaited automatically
        async def lookup_user(username):
            return await db.fetch_one(User, "SELECT ...", username)
    """
    result = func(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result
