import pytest

from bulkjob import cli
from bulkjob.errors import JobFailedError
from bulkjob.models.job import JobKind, JobRun, RunPhase


class RecordingOrchestrator:
    """Captures the calls the CLI makes."""

    instances = []
    error = None

    def __init__(self, config):
        self.config = config
        self.calls = []
        RecordingOrchestrator.instances.append(self)

    def _run(self, name, *args, **kwargs):
        self.calls.append((name, args, kwargs))
        if RecordingOrchestrator.error:
            raise RecordingOrchestrator.error
        return JobRun(kind=JobKind.EXPORT if name != "import" else JobKind.IMPORT,
                      job_id="job-1", phase=RunPhase.COMPLETED)

    def run_export(self, *args, **kwargs):
        return self._run("export", *args, **kwargs)

    def run_import(self, *args, **kwargs):
        return self._run("import", *args, **kwargs)

    def import_from_export_job(self, *args, **kwargs):
        return self._run("import", *args, **kwargs)

    def download_job(self, *args, **kwargs):
        return self._run("download", *args, **kwargs)


@pytest.fixture
def recorder(monkeypatch):
    RecordingOrchestrator.instances = []
    RecordingOrchestrator.error = None
    monkeypatch.setattr(cli, "BulkJobOrchestrator", RecordingOrchestrator)
    monkeypatch.delenv("BULKJOB_API_URL", raising=False)
    monkeypatch.setenv("BULKJOB_API_KEY", "env-key")
    return RecordingOrchestrator


def test_export_with_download_implies_wait(recorder, capsys):
    code = cli.main([
        "export", "--query", "query { Product { id } }", "--variables", '{"n": 1}',
        "--download", "--output", "out.jsonl", "--timeout", "90",
    ])

    assert code == 0
    orchestrator = recorder.instances[0]
    name, args, kwargs = orchestrator.calls[0]
    assert name == "export"
    assert args[0].variables == {"n": 1}
    assert kwargs == {
        "object_type": None, "wait": True, "download": True, "output": "out.jsonl", "timeout": 90.0,
    }
    assert orchestrator.config.api_key == "env-key"
    assert "Job ID: job-1" in capsys.readouterr().out


def test_export_reads_query_and_variables_files(recorder, tmp_path):
    query = tmp_path / "q.graphql"
    query.write_text("query { Order { id } }", encoding="utf-8")
    variables = tmp_path / "v.json"
    variables.write_text('{"limit": 5}', encoding="utf-8")

    assert cli.main(["export", "--query", "query { Order { id } }", "--variables-file", str(variables)]) == 0
    assert cli.main(["export", "--query-file", str(query), "--variables-file", str(variables)]) == 0

    for orchestrator in recorder.instances:
        payload = orchestrator.calls[0][1][0]
        assert payload.query == "query { Order { id } }"
        assert payload.variables == {"limit": 5}


def test_import_pairs_files_with_types(recorder):
    code = cli.main([
        "--api-url", "https://example.test",
        "import", "--object-type", "product", "--file", "p.json",
        "--object-type", "uom", "--file", "u.csv", "--wait", "--import-operation", "insert",
    ])

    assert code == 0
    orchestrator = recorder.instances[0]
    _, args, kwargs = orchestrator.calls[0]
    assert args[0] == [("p.json", "product"), ("u.csv", "uom")]
    assert kwargs["wait"] is True
    assert orchestrator.config.base_url == "https://example.test"
    assert orchestrator.config.import_operation == "insert"


def test_import_from_export_job(recorder):
    code = cli.main(["import", "--export-job-id", "exp7", "--all-objects", "--dir", "downloads"])

    assert code == 0
    _, args, kwargs = recorder.instances[0].calls[0]
    assert args == ("exp7",)
    assert kwargs["all_objects"] is True
    assert kwargs["directory"] == "downloads"


@pytest.mark.parametrize(
    "argv",
    [
        ["import", "--file", "p.json"],
        ["import", "--object-type", "product"],
        ["import", "--export-job-id", "exp7", "--file", "p.json"],
    ],
)
def test_invalid_import_arguments(recorder, argv):
    assert cli.main(argv) == 1
    assert all(not o.calls for o in recorder.instances)


def test_download(recorder):
    assert cli.main(["download", "exp5", "--object-type", "customer", "--output", "c.jsonl"]) == 0
    _, args, kwargs = recorder.instances[0].calls[0]
    assert args == ("exp5",)
    assert kwargs == {"object_type": "customer", "output": "c.jsonl"}


def test_job_errors_exit_with_status_1(recorder, caplog):
    recorder.error = JobFailedError("exp5", error="Query rejected")

    assert cli.main(["download", "exp5"]) == 1
    assert "Query rejected" in caplog.text


def test_keyboard_interrupt(recorder):
    recorder.error = KeyboardInterrupt()
    assert cli.main(["download", "exp5"]) == 130


def test_no_command_prints_help(capsys):
    assert cli.main([]) == 1
    assert "usage" in capsys.readouterr().out


