"""
Fire-and-forget telemetry dispatch with a bounded join.

Usage:
    from telemetry.dispatch import dispatch_in_background

    dispatch_in_background(sink.log_decision, event, grace_seconds=2.0)

The caller waits at most grace_seconds, then carries on whether or not
the send finished. Failures inside the thread are logged, never raised.
"""
import json
import logging
import threading
import time

logger = logging.getLogger(__name__)


def dispatch_in_background(target_fn, *args, grace_seconds: float = 2.0, **kwargs) -> threading.Thread:
    """
    Run target_fn in a daemon thread and join it for up to grace_seconds.

    Returns:
        threading.Thread instance (may still be alive)
    """
    name = getattr(target_fn, "__name__", "telemetry")

    def wrapper():
        start = time.time()
        try:
            target_fn(*args, **kwargs)
        except Exception as e:
            logger.warning(
                f"Background telemetry {name} failed: {e}",
                exc_info=True,
            )
            return
        logger.debug(json.dumps({
            "step": "TELEMETRY_DISPATCH",
            "status": "complete",
            "target": name,
            "duration_ms": int((time.time() - start) * 1000),
        }))

    thread = threading.Thread(target=wrapper, daemon=True, name=f"telemetry-{name}")
    thread.start()
    thread.join(timeout=max(0.0, grace_seconds))

    if thread.is_alive():
        logger.info(f"Telemetry {name} still running after {grace_seconds}s grace period, continuing")
    return thread
