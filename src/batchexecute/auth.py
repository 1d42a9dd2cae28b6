"""Cookie helpers for batchexecute.

Obtaining cookies and the ``at`` token is left to an external auth flow
(browser export, DevTools, etc.). The client only needs them as a
``cookie`` header value.
"""

from typing import Mapping


def format_cookie_header(cookies: Mapping[str, str]) -> str:
    """Get cookies as a header string."""
    return "; ".join(f"{k}={v}" for k, v in cookies.items())
