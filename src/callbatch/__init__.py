from .api import BatchedFunction as BatchedFunction
from .api import batched as batched
from .api import batcher as batcher
from .core import NO_CALLBACK as NO_CALLBACK
from .core import Batcher as Batcher
from .exceptions import InvalidOptionsError as InvalidOptionsError
from .exceptions import NotCallableError as NotCallableError
from .logging import setup_logging as setup_logging
from .options import BatchOptions as BatchOptions
from .scheduler import AsyncioScheduler as AsyncioScheduler
from .scheduler import Scheduler as Scheduler

__all__ = [
    "batcher",
    "batched",
    "BatchedFunction",
    "Batcher",
    "BatchOptions",
    "NO_CALLBACK",
    "Scheduler",
    "AsyncioScheduler",
    "NotCallableError",
    "InvalidOptionsError",
    "setup_logging",
]
