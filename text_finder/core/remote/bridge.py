import os
import sys
import queue
import logging
import tempfile
import threading
import subprocess
from pathlib import Path
from typing import Dict, Any, List, Optional, Sequence

from text_finder.core.search.models import ScanOutcome
from .protocol import FileScanJob, ProtocolError, LOG, RESULT, ERROR, decode_message
from .worker import ChannelLog, run_file_scan

logger = logging.getLogger(__name__)

WORKER_MODULE = "text_finder.core.remote.worker"
# text_finder/core/remote/bridge.py -> project root
PROJECT_ROOT = Path(__file__).resolve().parents[3]


class BoundaryError(RuntimeError):
    """The file phase could not run at all (channel or worker failure)."""

    def __init__(self, message: str, returncode: Optional[int] = None, stderr: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


def _forward(message: Dict[str, Any], log) -> Optional[ScanOutcome]:
    """Applies one channel message; returns the outcome once the result arrives."""
    kind = message["type"]
    if kind == LOG:
        log.println(message.get("line", ""))
        return None
    if kind == ERROR:
        raise BoundaryError(f"Worker failed: {message.get('error')}")
    try:
        return ScanOutcome.from_dict(message)
    except (KeyError, ValueError) as e:
        raise BoundaryError(f"Malformed result message: {e}") from e


class LocalChannel:
    """
    Runs the worker in a thread of this process.
    Messages still travel through a queue and are forwarded by the calling thread.
    """

    def call(self, job: FileScanJob, log) -> ScanOutcome:
        messages: "queue.Queue[Dict[str, Any]]" = queue.Queue()

        def work():
            try:
                outcome = run_file_scan(job, ChannelLog(messages.put))
                messages.put({"type": RESULT, **outcome.to_dict()})
            except Exception as e:
                logger.exception("Local worker crashed")
                messages.put({"type": ERROR, "error": repr(e)})

        worker = threading.Thread(target=work, name="text-finder-worker", daemon=True)
        worker.start()
        try:
            while True:
                outcome = _forward(messages.get(), log)
                if outcome is not None:
                    return outcome
        finally:
            worker.join()


class SubprocessChannel:
    """
    Spawns the worker as `[*command, python, -m, worker]`.
    With an empty command the worker runs on this machine; a prefix such as
    ["ssh", "agent-01"] puts it next to a remote workspace.
    """

    def __init__(self, command: Sequence[str] = (), python: Optional[str] = None):
        self.command = list(command)
        self.python = python or (sys.executable if not self.command else "python3")

    def argv(self) -> List[str]:
        return [*self.command, self.python, "-m", WORKER_MODULE]

    def _env(self) -> Optional[Dict[str, str]]:
        if self.command:
            return None
        env = dict(os.environ)
        paths = [str(PROJECT_ROOT)] + [p for p in env.get("PYTHONPATH", "").split(os.pathsep) if p]
        env["PYTHONPATH"] = os.pathsep.join(paths)
        return env

    def call(self, job: FileScanJob, log) -> ScanOutcome:
        argv = self.argv()
        logger.debug(f"Spawning worker: {argv}")
        with tempfile.TemporaryFile(mode="w+", encoding="utf-8", errors="replace") as stderr:
            try:
                proc = subprocess.Popen(
                    argv,
                    stdin=subprocess.PIPE,
                    stdout=subprocess.PIPE,
                    stderr=stderr,
                    text=True,
                    encoding="utf-8",
                    env=self._env(),
                )
            except OSError as e:
                raise BoundaryError(f"Unable to start worker {argv[0]!r}: {e}") from e

            outcome = None
            completed = False
            try:
                try:
                    proc.stdin.write(job.to_json())
                    proc.stdin.close()
                except OSError as e:
                    logger.warning(f"Worker closed its input early: {e}")

                for raw in proc.stdout:
                    if not raw.strip():
                        continue
                    if outcome is not None:
                        raise BoundaryError("Worker kept talking after its result")
                    try:
                        message = decode_message(raw)
                    except ProtocolError as e:
                        raise BoundaryError(str(e)) from e
                    outcome = _forward(message, log)
                completed = True
            finally:
                # stdout is at EOF unless we bailed out; reap the process either way
                if not completed and proc.poll() is None:
                    proc.kill()
                returncode = proc.wait()
                proc.stdout.close()
                if not proc.stdin.closed:
                    try:
                        proc.stdin.close()
                    except BrokenPipeError as e:
                        # unflushed job text for a worker that already exited
                        logger.debug(f"Dropped unsent job text: {e}")

            stderr.seek(0)
            tail = stderr.read()[-2000:]

        if returncode != 0:
            raise BoundaryError(
                f"Worker exited with status {returncode}", returncode=returncode, stderr=tail
            )
        if outcome is None:
            raise BoundaryError("Worker finished without a result", returncode=returncode, stderr=tail)
        return outcome


class RemoteExecutionBridge:
    """
    Blocking call into the workspace-owning machine.
    Every log line emitted there is on the caller's build log before run() returns.
    """

    def __init__(self, channel=None):
        self.channel = channel or LocalChannel()

    def run(self, job: FileScanJob, log) -> ScanOutcome:
        try:
            outcome = self.channel.call(job, log)
        except BoundaryError as e:
            logger.error(f"File phase failed at the execution boundary: {e}")
            if e.stderr:
                logger.error(f"Worker stderr:\n{e.stderr}")
            raise
        logger.debug(f"File phase outcome: {outcome.outcome.value}")
        return outcome


def build_bridge(settings) -> RemoteExecutionBridge:
    if settings.remote_mode == "subprocess":
        return RemoteExecutionBridge(SubprocessChannel(settings.remote_command, settings.remote_python))
    return RemoteExecutionBridge(LocalChannel())
