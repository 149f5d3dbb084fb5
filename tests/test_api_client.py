import json
from unittest.mock import MagicMock

import pytest
import requests

from bulkjob.api.client import PlatformClient
from bulkjob.api.models import JobStatusPayload
from bulkjob.errors import APIError, JobNotFoundError, TransientNetworkError
from bulkjob.models.config import JobConfig
from bulkjob.models.job import JobKind, JobStatus

BASE = "https://api.test"


def _response(status, body=None, url=f"{BASE}/x", content=None):
    response = requests.Response()
    response.status_code = status
    response.url = url
    response.reason = "Reason"
    response.encoding = "utf-8"
    if content is not None:
        response._content = content
    elif body is None:
        response._content = b""
    elif isinstance(body, str):
        response._content = body.encode("utf-8")
    else:
        response._content = json.dumps(body).encode("utf-8")
    return response


@pytest.fixture
def session():
    return MagicMock(spec=requests.Session)


@pytest.fixture
def api(session):
    return PlatformClient(JobConfig(base_url=BASE + "/", api_key="k"), session=session)


def _urls(session):
    return [c.args[1] for c in session.request.call_args_list]


def test_session_carries_api_key_and_retries():
    client = PlatformClient(JobConfig(api_key="secret"))
    session = client._session

    assert session.headers["nue-api-key"] == "secret"
    adapter = session.get_adapter("https://api.nue.io/cpq")
    assert adapter.max_retries.total == 3
    assert 503 in adapter.max_retries.status_forcelist


def test_create_export_job(api, session):
    session.request.return_value = _response(200, {"jobid": "exp-1"})

    job_id = api.create_export_job("query { Product { id } }", {"a": 1})

    assert job_id == "exp-1"
    method, url = session.request.call_args.args
    assert (method, url) == ("POST", f"{BASE}/cpq/async/exports")
    assert session.request.call_args.kwargs["json"] == {
        "query": "query { Product { id } }",
        "variables": {"a": 1},
    }
    assert session.request.call_args.kwargs["timeout"] == 60


def test_create_catalog_import_job(api, session):
    session.request.return_value = _response(201, {"jobId": "imp-1"})
    parts = [("price-book", ("pricebook.jsonl", b"{}", "application/octet-stream"))]

    assert api.create_catalog_import_job(parts) == "imp-1"

    kwargs = session.request.call_args.kwargs
    assert session.request.call_args.args[1] == f"{BASE}/cpq/async/imports/revenue-builder-data"
    assert kwargs["params"] == {"import-operation": "upsert"}
    assert kwargs["files"] == parts


def test_transaction_import_two_steps(api, session):
    session.request.side_effect = [_response(200, {"id": 77}), _response(200, {})]

    job_id = api.create_import_job("Customer", "csv")
    api.upload_import_content(job_id, [("data", ("c.csv", b"x", "application/octet-stream"))])

    assert job_id == "77"
    first, second = session.request.call_args_list
    assert first.kwargs["json"] == {"format": "csv", "objectname": "customer"}
    assert second.args == ("PATCH", f"{BASE}/cpq/async/imports/77/content")


def test_transaction_hub_import_job(api, session):
    records = [{"transactiontype": "order", "nueid": "n1"}]
    session.request.side_effect = [
        _response(200, {"jobid": "hub-1"}),
        _response(200, {"status": "completed"}),
    ]

    job_id = api.create_transaction_hub_import_job(records)
    payload = api.get_transaction_hub_import_status(job_id)

    assert job_id == "hub-1"
    first, second = session.request.call_args_list
    assert first.args == ("POST", f"{BASE}/revenue/transaction-hub/upload")
    assert first.kwargs["json"] == {"data": records}
    assert second.args == ("GET", f"{BASE}/revenue/transaction-hub/async-job/hub-1")
    assert payload.to_job(job_id, JobKind.TRANSACTION_HUB).status == JobStatus.COMPLETED


def test_transaction_hub_status_not_found(api, session):
    session.request.return_value = _response(404, {"message": "Not found"})
    with pytest.raises(JobNotFoundError):
        api.get_transaction_hub_import_status("hub-1")
    assert len(session.request.call_args_list) == 1


def test_missing_job_id(api, session):
    session.request.return_value = _response(200, {"status": "ok"})
    with pytest.raises(APIError, match="job id"):
        api.create_export_job("q", {})


@pytest.mark.parametrize(
    "body,message",
    [
        ({"errors": [{"message": "Bad query"}, {"message": "Bad field"}]}, "Bad query; Bad field"),
        ({"error": "Invalid token"}, "Invalid token"),
        ({"errorMessage": "Nope"}, "Nope"),
        ("upstream exploded", "upstream exploded"),
    ],
)
def test_http_errors_carry_server_message(api, session, body, message):
    session.request.return_value = _response(400, body)

    with pytest.raises(APIError) as excinfo:
        api.create_export_job("q", {})

    assert excinfo.value.status_code == 400
    assert excinfo.value.message == message


def test_connection_errors_are_transient(api, session):
    session.request.side_effect = requests.exceptions.ConnectionError("reset")
    with pytest.raises(TransientNetworkError):
        api.get_export_status("e1")

    session.request.side_effect = requests.exceptions.InvalidURL("bad")
    with pytest.raises(APIError) as excinfo:
        api.get_export_status("e1")
    assert not isinstance(excinfo.value, TransientNetworkError)


def test_export_status(api, session):
    session.request.return_value = _response(200, {
        "status": "Completed",
        "objects": [
            {"name": "Product", "status": "Completed", "totalSize": 3, "fileUrls": ["https://f/p"]},
            {"name": "Customer", "status": "Failed", "totalSize": None,
             "errors": [{"message": "No Customer records fetched"}]},
        ],
    })

    job = api.get_export_status("e1").to_job("e1", JobKind.EXPORT)

    assert job.status == JobStatus.COMPLETED
    assert job.objects[0].file_urls == ["https://f/p"]
    assert job.objects[1].total_size == 0
    assert job.objects[1].errors == ["No Customer records fetched"]
    assert session.request.call_args.args == ("GET", f"{BASE}/cpq/async/exports/e1")


def test_export_status_not_found(api, session):
    session.request.return_value = _response(404, {"error": "not found"})

    with pytest.raises(JobNotFoundError) as excinfo:
        api.get_export_status("e1")
    assert excinfo.value.job_id == "e1"


def test_import_status_falls_back_on_404(api, session):
    session.request.side_effect = [
        _response(404),
        _response(404),
        _response(200, {"status": "Processing"}),
    ]

    payload = api.get_import_status("i1")

    assert payload.status == "Processing"
    assert _urls(session) == [
        f"{BASE}/cpq/async/imports/revenue-builder-data/i1",
        f"{BASE}/cpq/async/imports/i1",
        f"{BASE}/cpq/async/exports/i1",
    ]


def test_import_status_stops_on_other_errors(api, session):
    session.request.side_effect = [_response(404), _response(500, {"error": "down"})]

    with pytest.raises(APIError) as excinfo:
        api.get_import_status("i1")

    assert excinfo.value.status_code == 500
    assert len(session.request.call_args_list) == 2


def test_import_status_all_not_found(api, session):
    session.request.return_value = _response(404)
    with pytest.raises(JobNotFoundError):
        api.get_import_status("i1")


def test_import_jobs_are_read_as_objects():
    payload = JobStatusPayload.model_validate({
        "status": "PartialCompleted",
        "errorMessage": "some rows failed",
        "importJobs": [{"objectName": "Order", "status": "PartialCompleted", "recordCount": 4}],
    })

    job = payload.to_job("i1", JobKind.IMPORT)

    assert job.status == JobStatus.PARTIAL_COMPLETED
    assert job.objects[0].name == "Order"
    assert job.objects[0].total_size == 4
    assert job.error == "some rows failed"


def test_download_file(api, session):
    session.request.return_value = _response(200, content=b'{"meta_objectName":"Product"}\n{}')

    data = api.download_file("https://files.test/abc?sig=1")

    assert data.startswith(b'{"meta_objectName"')
    assert session.request.call_args.args == ("GET", "https://files.test/abc?sig=1")
