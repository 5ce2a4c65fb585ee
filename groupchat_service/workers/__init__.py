"""Background workers of the service.

- runner: the event pipeline (outbox publisher and event consumer) with
  signal-driven graceful shutdown
"""

from __future__ import annotations

from groupchat_service.workers.runner import EventPipeline, build_pipeline, install_signal_handlers

__all__ = ["EventPipeline", "build_pipeline", "install_signal_handlers"]
