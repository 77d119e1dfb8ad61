"""Running the p4 executable.

Provides the synchronous and asynchronous invocation primitives used by the
retry engine and the completion fetchers.
"""

from p4shell.process.invoker import ProcessInvoker, build_environment
from p4shell.process.protocol import Invoker
from p4shell.process.request import InvocationRequest
from p4shell.process.result import InvocationResult

__all__ = [
    "InvocationRequest",
    "InvocationResult",
    "Invoker",
    "ProcessInvoker",
    "build_environment",
]
