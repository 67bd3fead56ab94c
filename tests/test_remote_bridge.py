import io
import sys
import json
import pytest

from text_finder.core.remote import bridge as bridge_module
from text_finder.core.remote import worker
from text_finder.core.remote.bridge import (
    RemoteExecutionBridge,
    LocalChannel,
    SubprocessChannel,
    BoundaryError,
    build_bridge,
)
from text_finder.core.remote.protocol import FileScanJob, ProtocolError, decode_message
from text_finder.core.config_loader import FinderSettings


@pytest.fixture
def workspace(tmp_path):
    (tmp_path / "logs").mkdir()
    (tmp_path / "logs" / "1.log").write_text("compiling\nwarning: deprecated\n", encoding="utf-8")
    (tmp_path / "logs" / "2.log").write_text("BUILD FAILED at step 3\n", encoding="utf-8")
    (tmp_path / "logs" / "3.log").write_text("BUILD FAILED again\n", encoding="utf-8")
    return tmp_path


def _job(root, include="**/*.log", regex="BUILD FAILED"):
    return FileScanJob(root=str(root), include_pattern=include, regex=regex)


def _lines(sink):
    return sink.getvalue().splitlines()


def test_run_file_scan_short_circuits(workspace, build_log, sink):
    outcome = worker.run_file_scan(_job(workspace), build_log)

    assert outcome.matched
    assert outcome.source_label == str(workspace / "logs" / "2.log")
    assert _lines(sink) == [f"{workspace / 'logs' / '2.log'}:", "BUILD FAILED at step 3"]


def test_run_file_scan_empty_set_is_abort(workspace, build_log, sink):
    outcome = worker.run_file_scan(_job(workspace, include="*.xml"), build_log)

    assert outcome.aborted
    assert _lines(sink) == ["Text Finder: File set '*.xml' is empty"]


def test_run_file_scan_bad_regex_is_abort(workspace, build_log, sink):
    outcome = worker.run_file_scan(_job(workspace, regex="(oops"), build_log)

    assert outcome.aborted
    assert _lines(sink) == ["Text Finder: Unable to compile regular expression '(oops'"]


def test_worker_main_speaks_json_lines(workspace, monkeypatch):
    stdout = io.StringIO()
    monkeypatch.setattr(sys, "stdin", io.StringIO(_job(workspace).to_json()))
    monkeypatch.setattr(sys, "stdout", stdout)

    assert worker.main() == 0

    messages = [json.loads(line) for line in stdout.getvalue().splitlines()]
    assert [m["type"] for m in messages] == ["log", "log", "result"]
    assert messages[1]["line"] == "BUILD FAILED at step 3"
    assert messages[-1]["outcome"] == "MATCHED"


def test_local_channel_forwards_logs_before_returning(workspace, sink, build_log):
    outcome = RemoteExecutionBridge(LocalChannel()).run(_job(workspace), build_log)

    assert outcome.matched
    assert _lines(sink)[-1] == "BUILD FAILED at step 3"


def test_local_channel_worker_crash_is_boundary_error(workspace, build_log, monkeypatch):
    def explode(job, log):
        log.println("about to fail")
        raise RuntimeError("disk vanished")

    monkeypatch.setattr(bridge_module, "run_file_scan", explode)

    with pytest.raises(BoundaryError, match="disk vanished"):
        RemoteExecutionBridge(LocalChannel()).run(_job(workspace), build_log)


def test_subprocess_channel_end_to_end(workspace, sink, build_log):
    outcome = RemoteExecutionBridge(SubprocessChannel()).run(_job(workspace), build_log)

    assert outcome.matched
    assert outcome.line == "BUILD FAILED at step 3"
    assert _lines(sink) == [f"{workspace / 'logs' / '2.log'}:", "BUILD FAILED at step 3"]


def test_subprocess_channel_forwards_abort_diagnostic(workspace, sink, build_log):
    missing_job = FileScanJob(root=str(workspace / "absent"), include_pattern="*.log", regex="x")

    outcome = RemoteExecutionBridge(SubprocessChannel()).run(missing_job, build_log)

    assert outcome.aborted
    assert _lines(sink) == [f"Text Finder: Workspace '{workspace / 'absent'}' is not a directory"]


def test_subprocess_channel_unstartable_worker(workspace, build_log, tmp_path):
    channel = SubprocessChannel(python=str(tmp_path / "no-such-python"))

    with pytest.raises(BoundaryError, match="Unable to start worker"):
        RemoteExecutionBridge(channel).run(_job(workspace), build_log)


def test_subprocess_channel_nonzero_exit(workspace, build_log, monkeypatch):
    channel = SubprocessChannel()
    monkeypatch.setattr(channel, "argv", lambda: [sys.executable, "-c", "import sys; sys.exit(3)"])

    with pytest.raises(BoundaryError) as exc:
        channel.call(_job(workspace), build_log)
    assert exc.value.returncode == 3


def test_subprocess_channel_missing_result(workspace, build_log, sink, monkeypatch):
    script = "import json; print(json.dumps({'type': 'log', 'line': 'hi'}))"
    channel = SubprocessChannel()
    monkeypatch.setattr(channel, "argv", lambda: [sys.executable, "-c", script])

    with pytest.raises(BoundaryError, match="without a result"):
        channel.call(_job(workspace), build_log)
    assert _lines(sink) == ["hi"]


def test_subprocess_channel_garbage_output(workspace, build_log, monkeypatch):
    channel = SubprocessChannel()
    monkeypatch.setattr(channel, "argv", lambda: [sys.executable, "-c", "print('not json')"])

    with pytest.raises(BoundaryError, match="Malformed message"):
        channel.call(_job(workspace), build_log)


def test_subprocess_argv_with_remote_prefix():
    channel = SubprocessChannel(command=["ssh", "agent-01"])

    assert channel.argv() == ["ssh", "agent-01", "python3", "-m", "text_finder.core.remote.worker"]


def test_build_bridge_from_settings():
    assert isinstance(build_bridge(FinderSettings()).channel, LocalChannel)

    remote = build_bridge(FinderSettings(remote_mode="subprocess", remote_command=("ssh", "a"), remote_python="py"))
    assert isinstance(remote.channel, SubprocessChannel)
    assert remote.channel.argv()[:3] == ["ssh", "a", "py"]


def test_protocol_rejects_garbage():
    with pytest.raises(ProtocolError):
        decode_message('{"type": "chatter"}')
    with pytest.raises(ProtocolError):
        FileScanJob.from_json('{"root": "/x"}')


def test_job_round_trip():
    job = FileScanJob(root="/ws", include_pattern="**/*.log", regex="ERR", encoding="latin-1")
    assert FileScanJob.from_json(job.to_json()) == job


def test_subprocess_channel_closes_input_when_worker_ignores_it(workspace, build_log, monkeypatch):
    spawned = []
    real_popen = bridge_module.subprocess.Popen

    def recording_popen(*args, **kwargs):
        proc = real_popen(*args, **kwargs)
        spawned.append(proc)
        return proc

    monkeypatch.setattr(bridge_module.subprocess, "Popen", recording_popen)
    channel = SubprocessChannel()
    monkeypatch.setattr(channel, "argv", lambda: [sys.executable, "-c", "import sys; sys.exit(4)"])
    # larger than a pipe buffer, so the write hits a closed pipe
    job = _job(workspace, regex="x" * (1 << 20))

    with pytest.raises(BoundaryError) as exc:
        channel.call(job, build_log)

    assert exc.value.returncode == 4
    assert spawned[0].stdin.closed
    assert spawned[0].stdout.closed
