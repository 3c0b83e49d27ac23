"""Layout guard.

Decides how a location is wrapped before any content is picked:

    pathname == /admin ───────────────────────────► BARE
         │ no
         ▼
    catalog ready? ── no ─────────────────────────► SHELL
         │ yes
         ▼
    pathname in table? ── no ─────────────────────► NOT_FOUND
         │ yes
         ▼
       CHROME

The guard is pure given (pathname, table, readiness); nothing is persisted
between navigations.
"""

from enum import Enum

from storefront.routing.paths import ADMIN_PATH, PathTable


class LayoutKind(str, Enum):
    """How the page is wrapped."""

    SHELL = "shell"
    NOT_FOUND = "not_found"
    BARE = "bare"
    CHROME = "chrome"

    def renders_content(self) -> bool:
        """Whether a routed view is rendered inside this layout."""
        return self in {LayoutKind.BARE, LayoutKind.CHROME}


def decide_layout(pathname: str, table: PathTable, ready: bool) -> LayoutKind:
    """Pick the layout for a location.

    Args:
        pathname: Location path, matched exactly.
        table: Current path table.
        ready: Catalog readiness.

    Returns:
        The layout to render.
    """
    if pathname == ADMIN_PATH:
        return LayoutKind.BARE
    if not ready:
        return LayoutKind.SHELL
    if pathname not in table:
        return LayoutKind.NOT_FOUND
    return LayoutKind.CHROME
