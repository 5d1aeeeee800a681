"""
The Supervisor package.

Owns the worker process's lifetime: spawn with an explicit storage path,
stream its output into the host's logs, terminate it exactly once.
"""

from stockroom.supervisor.process import ProcessHandle, ProcessState, ProcessSupervisor, run_host

__all__ = ["ProcessHandle", "ProcessState", "ProcessSupervisor", "run_host"]
