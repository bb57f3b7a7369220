import pytest
from fastapi.testclient import TestClient

from main import app
from settings.config import settings


@pytest.fixture
def client():
    return TestClient(app)


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_extract_csv_returns_camel_case_fields(client):
    response = client.post(
        "/statements/extract",
        files={"file": ("jan_2026.csv", b"sales count,chargeback count\n100,0\n", "text/csv")},
    )
    assert response.status_code == 200
    body = response.json()
    fields = body["fields"]
    assert fields["totalSalesCount"] == {"status": "value", "value": 100, "source": "csv:column:sales_count"}
    assert fields["tc15Count"]["status"] == "zero"
    assert fields["fraudAmountUSD"]["status"] == "not_found"
    assert body["requiresManualEntry"] is False
    assert body["source"] == "csv"


def test_extract_rejects_unsupported_type(client):
    response = client.post("/statements/extract", files={"file": ("notes.txt", b"hello", "text/plain")})
    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "ERROR_INVALID_TYPE"


def test_extract_rejects_corrupt_pdf(client):
    response = client.post("/statements/extract", files={"file": ("bad.pdf", b"not a pdf", "application/pdf")})
    assert response.status_code == 400


def test_extract_rejects_empty_upload(client):
    response = client.post("/statements/extract", files={"file": ("empty.csv", b"", "text/csv")})
    assert response.status_code == 400


def test_extract_rejects_oversized_upload(client, monkeypatch):
    monkeypatch.setattr(settings, "MAX_FILE_SIZE_MB", 0)
    response = client.post("/statements/extract", files={"file": ("big.csv", b"sales count\n1\n", "text/csv")})
    assert response.status_code == 413


def test_batch_returns_one_entry_per_file(client, make_pdf, tsys_lines):
    files = [
        ("files", ("statement_mar_2026.csv", b"sales count\n5\n", "text/csv")),
        ("files", ("broken.pdf", b"garbage", "application/pdf")),
        ("files", ("tsys.pdf", make_pdf(tsys_lines), "application/pdf")),
    ]
    response = client.post("/statements/batch", files=files)
    assert response.status_code == 200
    entries = response.json()
    assert [e["filename"] for e in entries] == ["tsys.pdf", "statement_mar_2026.csv", "broken.pdf"]
    assert entries[0]["detectedFormat"] == "tsys"
    assert entries[0]["period"]["label"] == "Feb 2026"
    assert entries[2]["parseError"]
