from bulkjob.errors import APIError
from bulkjob.jobs.classifier import ResultClassifier
from bulkjob.jobs.downloader import Downloader
from bulkjob.models.job import Job, JobKind, JobObjectResult


def _job(*objects):
    return Job(id="exp9", kind=JobKind.EXPORT, status_text="Completed", objects=list(objects))


def _completed(name, url, total=1):
    return JobObjectResult(name, "Completed", total, [url])


def test_single_object_goes_to_requested_output(tmp_path, client, config):
    client.downloads["u1"] = b'{"meta_objectName": "Product"}\n{"id": 1}'
    output = tmp_path / "out" / "products.jsonl"

    report = Downloader(client, config).download(_job(_completed("Product", "u1")), output=output)

    assert report.files == [output]
    assert output.read_bytes() == client.downloads["u1"]


def test_single_object_without_output_uses_type_and_job_id(tmp_path, client, config):
    client.downloads["u1"] = b"data"

    report = Downloader(client, config).download(_job(_completed("Product", "u1")))

    assert report.written == {"Product": tmp_path / "product-exp9.jsonl"}


def test_multiple_objects_never_share_a_file(tmp_path, client, config):
    client.downloads.update({"u1": b"products", "u2": b"uoms", "u3": b"books"})
    job = _job(_completed("Product", "u1"), _completed("UOM", "u2"), _completed("PriceBook", "u3"))
    output = tmp_path / "exports" / "everything.ndjson"

    report = Downloader(client, config).download(job, output=output)

    assert len(set(report.files)) == 3
    assert report.written["Product"] == tmp_path / "exports" / "product-exp9.ndjson"
    assert report.written["UOM"].read_bytes() == b"uoms"
    assert not output.exists()


def test_same_type_twice_gets_numeric_suffix(tmp_path, client, config):
    client.downloads.update({"u1": b"first", "u2": b"second"})
    job = _job(_completed("Product", "u1"), _completed("product", "u2"))

    report = Downloader(client, config).download(job)

    paths = sorted(p.name for p in report.files)
    assert paths == ["product-exp9-2.jsonl", "product-exp9.jsonl"]


def test_only_completed_objects_with_files_are_written(tmp_path, client, config):
    client.downloads["u1"] = b"data"
    job = _job(
        _completed("Product", "u1"),
        JobObjectResult("Customer", "Failed", 0, [], ["No Customer records fetched"]),
        JobObjectResult("Order", "Failed", 0, [], ["Invalid field"]),
        JobObjectResult("Invoice", "Completed", 0, []),
    )
    outcome = ResultClassifier().classify(job)

    report = Downloader(client, config).download(job, outcome)

    assert list(report.written) == ["Product"]
    assert report.not_written == {
        "Customer": "no_records_available",
        "Order": "real_failure",
        "Invoice": "completed",
    }
    assert client.call_names() == ["download_file"]


def test_usage_is_skipped(tmp_path, client, config):
    client.downloads.update({"u1": b"a", "u2": b"b"})
    job = _job(_completed("Usage", "u1"), _completed("Customer", "u2"))

    report = Downloader(client, config).download(job)

    assert list(report.written) == ["Customer"]
    assert report.not_written == {"Usage": "download not supported"}
    # Only one downloadable object left, so it keeps the single-file name
    assert report.written["Customer"] == tmp_path / "customer-exp9.jsonl"


def test_filter_by_object_type(tmp_path, client, config):
    client.downloads.update({"u1": b"a", "u2": b"b"})
    job = _job(_completed("Product", "u1"), _completed("UOM", "u2"))

    report = Downloader(client, config).download(job, object_type="uom")

    assert list(report.written) == ["UOM"]
    assert client.calls == [("download_file", "u2")]


def test_failed_download_does_not_stop_others(tmp_path, client, config):
    client.downloads.update({"u1": APIError("Forbidden", status_code=403), "u2": b"ok"})
    job = _job(_completed("Product", "u1"), _completed("UOM", "u2"))

    report = Downloader(client, config).download(job)

    assert list(report.written) == ["UOM"]
    assert "403" in report.errors["Product"]
    assert report.to_dict()["errors"] == report.errors


def test_empty_job(client, config):
    report = Downloader(client, config).download(_job())
    assert report.files == []
    assert client.calls == []
