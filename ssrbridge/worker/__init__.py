"""Render worker: loads a bundle and answers framed render requests on stdio."""

from .server import run_worker, serve
from .session import WorkerSession, WorkerState

__all__ = ["WorkerSession", "WorkerState", "run_worker", "serve"]
