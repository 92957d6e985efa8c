"""Reduce per-device responses into one report."""

from __future__ import annotations

import logging
from typing import Iterable

from .models import AggregateResult, Response

logger = logging.getLogger(__name__)


class ResponseAggregator:
    """Summarizes collected responses."""

    def summarize(self, responses: Iterable[Response]) -> AggregateResult:
        """
        Build an AggregateResult from ``responses``.

        ``all_succeeded`` holds only if every response has success status.
        Error messages keep collection order; empty ones are dropped.
        """
        collected = list(responses)
        failed = [r for r in collected if not r.ok]
        errors = [r.error for r in failed if r.error]
        if failed:
            logger.info("%d of %d command(s) failed", len(failed), len(collected))
        return AggregateResult(
            all_succeeded=not failed,
            errors=errors,
            responses=collected,
        )
