"""Output dispatch: escape generated text and hand it to a delivery primitive.

The dispatcher owns sanitization; the backend owns delivery. Notification
and dialog scripts embed the text in an AppleScript string literal, so the
text is escaped such that the literal can only end at its closing quote.
Scripts are passed to ``osascript`` as a single argv element and never
through a shell, which keeps backticks and ``$(...)`` inert. The clipboard
receives the raw text unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import shutil
import subprocess
import sys
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from rephraser.config import OUTPUT_METHODS
from rephraser.errors import OutputDispatchError

if TYPE_CHECKING:
    from rephraser.config import OutputMethod

logger = logging.getLogger(__name__)

MAX_NOTIFICATION_CHARS = 200
_ELLIPSIS = "..."


@dataclass(frozen=True)
class Delivery:
    """Acknowledgement of a successful dispatch.

    ``payload`` is exactly what the delivery primitive received: the raw text
    for the clipboard, the full AppleScript source otherwise.
    """

    method: OutputMethod
    payload: str


@runtime_checkable
class DeliveryBackend(Protocol):
    """OS-level delivery primitives."""

    def set_clipboard(self, text: str) -> None:
        """Place *text* on the clipboard verbatim."""
        ...

    def run_script(self, script: str) -> None:
        """Run an AppleScript source string."""
        ...


def escape_applescript_string(text: str) -> str:
    """Escape *text* for use inside a double-quoted AppleScript literal.

    Backslashes go first so the escapes added for quotes are not doubled.
    """
    return text.replace("\\", "\\\\").replace('"', '\\"')


def truncate_notification_text(text: str, max_chars: int = MAX_NOTIFICATION_CHARS) -> str:
    """Truncate to *max_chars* characters, ending in ``...`` when cut."""
    if len(text) <= max_chars:
        return text
    keep = max(0, max_chars - len(_ELLIPSIS))
    return text[:keep] + _ELLIPSIS


def build_notification_script(text: str, *, title: str = "Rephraser") -> str:
    """AppleScript for a system notification; notifications are single-line."""
    single_line = truncate_notification_text(text).replace("\r", " ").replace("\n", " ")
    return (
        f'display notification "{escape_applescript_string(single_line)}" '
        f'with title "{escape_applescript_string(title)}"'
    )


def build_dialog_script(text: str, *, title: str = "Rephraser") -> str:
    """AppleScript for a modal dialog with a single OK button."""
    return (
        f'display dialog "{escape_applescript_string(text)}" '
        f'with title "{escape_applescript_string(title)}" '
        'buttons {"OK"} default button "OK"'
    )


class MacOSBackend:
    """Delivery via ``pbcopy`` and ``osascript``."""

    def __init__(self, *, timeout_s: float | None = None) -> None:
        """Initialize with an optional subprocess timeout (dialogs block)."""
        self.timeout_s = timeout_s

    @staticmethod
    def _check_platform() -> None:
        if sys.platform != "darwin":
            raise OutputDispatchError(
                "Output methods are only supported on macOS",
                hint="Use a custom DeliveryBackend on other platforms.",
            )

    def _run(self, argv: list[str], *, stdin: str | None = None) -> None:
        self._check_platform()
        if shutil.which(argv[0]) is None:
            raise OutputDispatchError(f"{argv[0]} not found on PATH")
        try:
            completed = subprocess.run(  # noqa: S603 - fixed argv, no shell
                argv,
                input=stdin,
                capture_output=True,
                text=True,
                timeout=self.timeout_s,
                check=False,
            )
        except (OSError, subprocess.SubprocessError) as e:
            raise OutputDispatchError(f"Failed to execute {argv[0]}: {e}") from e
        if completed.returncode != 0:
            stderr = (completed.stderr or "").strip()
            raise OutputDispatchError(
                f"{argv[0]} exited with status {completed.returncode}"
                + (f": {stderr}" if stderr else "")
            )

    def set_clipboard(self, text: str) -> None:
        """Copy *text* to the clipboard through pbcopy's stdin."""
        self._run(["pbcopy"], stdin=text)

    def run_script(self, script: str) -> None:
        """Run *script* with ``osascript -e``."""
        self._run(["osascript", "-e", script])


def dispatch(
    method: OutputMethod,
    text: str,
    *,
    backend: DeliveryBackend | None = None,
    title: str = "Rephraser",
) -> Delivery:
    """Deliver *text* through the sink selected by *method*.

    Raises:
        OutputDispatchError: Unknown method or a failed delivery primitive.
    """
    if method not in OUTPUT_METHODS:
        raise OutputDispatchError(
            f"Unknown output method: {method!r}",
            hint=f"Supported methods: {', '.join(OUTPUT_METHODS)}",
        )
    target = backend if backend is not None else MacOSBackend()

    if method == "clipboard":
        payload = text
        deliver = target.set_clipboard
    elif method == "notification":
        payload = build_notification_script(text, title=title)
        deliver = target.run_script
    else:
        payload = build_dialog_script(text, title=title)
        deliver = target.run_script

    try:
        deliver(payload)
    except OutputDispatchError:
        raise
    except Exception as e:
        raise OutputDispatchError(
            f"{method} delivery failed: {type(e).__name__}: {e}"
        ) from e

    logger.debug("Delivered %d chars via %s", len(text), method)
    return Delivery(method=method, payload=payload)
