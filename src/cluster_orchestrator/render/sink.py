"""
Dry run output sink.

The output stream is the only shared mutable resource of the orchestrator.
A sink writes each manifest as one locked write, so manifests from concurrent
dry runs never interleave.

Callers that want to capture output pass their own sink, for example one
wrapping io.StringIO, instead of swapping sys.stdout.
"""

from __future__ import annotations

import sys
import threading
from typing import TextIO

from cluster_orchestrator.core.types import RenderedManifest

DOCUMENT_SEPARATOR = "---\n"


class ManifestSink:
    """Serialize whole manifests onto a text stream."""

    def __init__(self, stream: TextIO, lock: threading.Lock | None = None) -> None:
        self._stream = stream
        self._lock = lock or threading.Lock()

    @property
    def stream(self) -> TextIO:
        return self._stream

    def emit(self, manifest: RenderedManifest) -> None:
        text = manifest.text
        if not text.endswith("\n"):
            text += "\n"
        payload = DOCUMENT_SEPARATOR + text
        with self._lock:
            self._stream.write(payload)
            self._stream.flush()


_stdout_lock = threading.Lock()


def stdout_sink() -> ManifestSink:
    """
    Return a sink bound to the current sys.stdout.

    Every stdout sink shares one process wide lock.
    """
    return ManifestSink(sys.stdout, lock=_stdout_lock)
