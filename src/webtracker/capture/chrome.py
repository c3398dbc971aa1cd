# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Google Chrome tab enumeration via AppleScript.

Runs a short script through osascript that prints every window's mode
followed by the title and URL of each of its tabs. Fields are separated
by the ASCII unit separator and records by the record separator, so
titles containing tabs or newlines survive the round trip.
"""

import logging
import subprocess
from dataclasses import dataclass, field
from typing import List, Protocol

logger = logging.getLogger(__name__)

OSASCRIPT = "/usr/bin/osascript"

FIELD_SEP = "\x1f"
RECORD_SEP = "\x1e"

WINDOW_MARKER = "W"
TAB_MARKER = "T"

_SCRIPT_TEMPLATE = """
set fieldSep to (ASCII character 31)
set recordSep to (ASCII character 30)
set output to ""
tell application "{application}"
    repeat with w in windows
        set output to output & "W" & fieldSep & (mode of w) & recordSep
        repeat with t in tabs of w
            set output to output & "T" & fieldSep & (title of t) & fieldSep & (URL of t) & recordSep
        end repeat
    end repeat
end tell
return output
"""


class BrowserUnavailableError(RuntimeError):
    """The browser could not be queried."""


@dataclass(frozen=True)
class BrowserTab:
    title: str
    url: str


@dataclass
class BrowserWindow:
    """A browser window: its mode ("normal", "incognito") and tabs."""

    mode: str
    tabs: List[BrowserTab] = field(default_factory=list)

    @property
    def incognito(self) -> bool:
        return self.mode.strip().casefold() == "incognito"


class TabSource(Protocol):
    """Anything that can list the currently open browser windows."""

    def enumerate_windows(self) -> List[BrowserWindow]:
        ...


def _applescript_escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')


def parse_output(output: str) -> List[BrowserWindow]:
    """
    Parse the script output into windows.

    Tab records that appear before any window record are dropped.
    """
    windows: List[BrowserWindow] = []
    for record in output.split(RECORD_SEP):
        record = record.strip("\r\n")
        if not record:
            continue
        fields = record.split(FIELD_SEP)
        kind = fields[0]
        if kind == WINDOW_MARKER and len(fields) >= 2:
            windows.append(BrowserWindow(mode=fields[1]))
        elif kind == TAB_MARKER and len(fields) >= 3:
            if not windows:
                logger.debug("Tab record before any window record, skipping")
                continue
            # URLs never contain the separator; titles might
            title = FIELD_SEP.join(fields[1:-1])
            windows[-1].tabs.append(BrowserTab(title=title, url=fields[-1]))
        else:
            logger.debug(f"Unrecognized record from browser: {record!r}")
    return windows


class ChromeTabSource:
    """
    Lists Chrome windows and tabs through osascript.

    Only works on macOS with Chrome installed and automation permission
    granted to the calling process.
    """

    def __init__(self, application: str = "Google Chrome", timeout: float = 10.0):
        """
        Initialize source.

        Args:
            application: AppleScript application name to query
            timeout: Seconds to wait for osascript
        """
        self.application = application
        self.timeout = timeout
        self.script = _SCRIPT_TEMPLATE.format(application=_applescript_escape(application))

    def enumerate_windows(self) -> List[BrowserWindow]:
        """
        Query the browser.

        Returns:
            List of windows with their tabs

        Raises:
            BrowserUnavailableError: If osascript is missing, fails or times out
        """
        try:
            result = subprocess.run(
                [OSASCRIPT, "-e", self.script],
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise BrowserUnavailableError(f"osascript not found at {OSASCRIPT}") from e
        except subprocess.TimeoutExpired as e:
            raise BrowserUnavailableError(
                f"{self.application} did not answer within {self.timeout}s"
            ) from e

        if result.returncode != 0:
            raise BrowserUnavailableError(
                f"osascript exited with {result.returncode}: {result.stderr.strip()}"
            )

        windows = parse_output(result.stdout)
        logger.debug(
            f"{self.application}: {len(windows)} windows, "
            f"{sum(len(w.tabs) for w in windows)} tabs"
        )
        return windows
