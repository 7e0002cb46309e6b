"""restdriver — REST data-access driver with a URL path query codec."""

from __future__ import annotations

__version__ = "0.4.0"
