"""Timed prompt for removing auto-created export sessions."""

from __future__ import annotations

import asyncio
import logging
import queue
import sys
import threading
from typing import TYPE_CHECKING, TextIO

from d8_data.utils.errors import D8DataError

if TYPE_CHECKING:
    from d8_data.domains.export.client import DataExportClient

logger = logging.getLogger(__name__)

DEFAULT_TEARDOWN_TIMEOUT = 30.0

_YES = {"y", "yes"}
_NO = {"n", "no"}


def teardown_prompt(timeout: float) -> str:
    """Prompt text shown before an auto-created session is deleted."""
    return (
        f"DataExport will auto-delete in {timeout:g} sec "
        "[press y+Enter to delete now, n+Enter to cancel]"
    )


def ask_yes_no_with_timeout(
    prompt: str,
    timeout: float,
    stream: TextIO | None = None,
    out: TextIO | None = None,
    interactive: bool | None = None,
) -> bool:
    """Ask a yes/no question; no answer within ``timeout`` counts as yes.

    Input is read on a daemon thread so an unanswered prompt never blocks
    past the timeout. Without a terminal on ``stream`` nothing is asked and
    the answer is no, as it is when reading fails or input ends.

    Args:
        prompt: Question text.
        timeout: Seconds to wait for an answer.
        stream: Input stream (default: standard input).
        out: Where the prompt is written (default: standard error).
        interactive: Override terminal detection.
    """
    stream = stream if stream is not None else sys.stdin
    out = out if out is not None else sys.stderr
    if interactive is None:
        interactive = stream.isatty()
    if not interactive:
        return False

    answers: queue.Queue[bool] = queue.Queue(maxsize=1)

    def read_answer() -> None:
        while True:
            out.write(f"{prompt}: ")
            out.flush()
            try:
                line = stream.readline()
            except (OSError, ValueError):
                line = ""
            if not line:
                out.write("Error reading input, chosen default value: no.\n")
                answers.put(False)
                return

            answer = line.strip().lower()
            if answer in _YES:
                answers.put(True)
                return
            if answer in _NO:
                answers.put(False)
                return
            out.write("Invalid input. Please press 'y' or 'n'.\n")

    threading.Thread(target=read_answer, name="teardown-prompt", daemon=True).start()

    try:
        return answers.get(timeout=timeout)
    except queue.Empty:
        out.write("\n")
        out.flush()
        return True


async def offer_teardown(
    client: DataExportClient,
    name: str,
    namespace: str,
    created: bool,
    timeout: float = DEFAULT_TEARDOWN_TIMEOUT,
    stream: TextIO | None = None,
    out: TextIO | None = None,
    interactive: bool | None = None,
) -> bool:
    """Offer to delete a session this run created.

    Pre-existing sessions are never touched. Delete failures are logged,
    not raised.

    Returns:
        True if the session was deleted.
    """
    if not created:
        return False

    confirmed = await asyncio.to_thread(
        ask_yes_no_with_timeout, teardown_prompt(timeout), timeout, stream, out, interactive
    )
    if not confirmed:
        logger.info(f"Keeping DataExport {namespace}/{name}")
        return False

    try:
        await asyncio.to_thread(client.delete, name, namespace)
    except D8DataError as e:
        logger.warning(f"Failed to delete DataExport {namespace}/{name}: {e}")
        return False
    return True
