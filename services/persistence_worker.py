"""
Background persistence.

Store round-trips (save, list, load, delete) run on a worker thread so
the editor stays responsive while a remote store answers.
"""

import logging
from typing import Callable

from PyQt6.QtCore import QThread, pyqtSignal

from .persistence import PersistenceError

logger = logging.getLogger(__name__)


class PersistenceTask(QThread):
    """
    Worker thread running one persistence operation.

    The result of the operation is emitted with `succeeded`; a
    PersistenceError is reported through `failed` with its message.
    Anything passed in must already be a snapshot: the worker never
    touches the live graph.
    """

    succeeded = pyqtSignal(object)  # operation result
    failed = pyqtSignal(str)  # error message

    def __init__(self, operation: str, func: Callable, *args):
        super().__init__()
        self.operation = operation
        self._func = func
        self._args = args

    def run(self):
        """Run the operation."""
        logger.debug(f"Running persistence task '{self.operation}'")
        try:
            result = self._func(*self._args)
        except PersistenceError as e:
            logger.error(f"Persistence task '{self.operation}' failed: {e}")
            self.failed.emit(str(e))
            return
        self.succeeded.emit(result)
