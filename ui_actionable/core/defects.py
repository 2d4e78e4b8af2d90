from __future__ import annotations

import logging
from typing import Optional

from ui_actionable.core.exceptions import ActionDefectError

logger = logging.getLogger(__name__)


def report_defect(error: ActionDefectError, *, debug: bool, log: Optional[logging.Logger] = None) -> None:
    """Raise ``error`` in debug mode, otherwise log it and let the caller degrade."""
    if debug:
        raise error
    (log or logger).warning('%s: %s', type(error).__name__, error)
