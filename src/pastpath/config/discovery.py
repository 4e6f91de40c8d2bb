"""Find browser history databases installed for the current user."""

from __future__ import annotations

import os
import sys
from pathlib import Path

from pastpath.config.models import BrowserConfig


def _chrome_roots(home: Path) -> dict[str, Path]:
    """Chromium user-data directories per platform, keyed by browser type."""
    if sys.platform == "win32":
        local = Path(os.environ.get("LOCALAPPDATA", home / "AppData" / "Local"))
        return {
            "chrome": local / "Google" / "Chrome" / "User Data",
            "edge": local / "Microsoft" / "Edge" / "User Data",
            "brave": local / "BraveSoftware" / "Brave-Browser" / "User Data",
            "vivaldi": local / "Vivaldi" / "User Data",
        }
    if sys.platform == "darwin":
        support = home / "Library" / "Application Support"
        return {
            "chrome": support / "Google" / "Chrome",
            "edge": support / "Microsoft Edge",
            "brave": support / "BraveSoftware" / "Brave-Browser",
            "vivaldi": support / "Vivaldi",
        }
    config = home / ".config"
    return {
        "chrome": config / "google-chrome",
        "chromium": config / "chromium",
        "edge": config / "microsoft-edge",
        "brave": config / "BraveSoftware" / "Brave-Browser",
        "vivaldi": config / "vivaldi",
    }


def _firefox_roots(home: Path) -> dict[str, Path]:
    if sys.platform == "win32":
        roaming = Path(os.environ.get("APPDATA", home / "AppData" / "Roaming"))
        return {"firefox": roaming / "Mozilla" / "Firefox" / "Profiles"}
    if sys.platform == "darwin":
        return {"firefox": home / "Library" / "Application Support" / "Firefox" / "Profiles"}
    return {"firefox": home / ".mozilla" / "firefox"}


def detect_browsers(home: Path | None = None) -> list[BrowserConfig]:
    """Return a BrowserConfig for every history database found on disk."""
    home = home or Path.home()
    found: list[BrowserConfig] = []

    for browser_type, root in _chrome_roots(home).items():
        if not root.is_dir():
            continue
        for history in sorted(root.glob("*/History")):
            profile = history.parent.name
            if profile == "System Profile":
                continue
            name = browser_type if profile == "Default" else f"{browser_type}-{profile}"
            found.append(BrowserConfig(name=name, type=browser_type, history_path=str(history)))

    for browser_type, root in _firefox_roots(home).items():
        if not root.is_dir():
            continue
        for places in sorted(root.glob("*/places.sqlite")):
            profile = places.parent.name.split(".", 1)[-1]
            found.append(
                BrowserConfig(
                    name=f"{browser_type}-{profile}",
                    type=browser_type,
                    history_path=str(places),
                )
            )

    return found
