from datetime import datetime, timezone

from catalog_api.core.audit import AuditLogger


def read_today(audit: AuditLogger) -> str:
    return audit.log_file_path().read_text(encoding="utf-8")


def test_record_creates_directory_and_daily_file(tmp_path):
    audit = AuditLogger(tmp_path / "nested" / "logs")

    audit.record("INFO", "Products fetched", "GET", "/products", status=200)

    path = audit.log_file_path()
    assert path.name == f"{datetime.now(timezone.utc).date().isoformat()}.log"
    text = read_today(audit)
    assert "[INFO]" in text
    assert "Method: GET" in text
    assert "URL: /products" in text
    assert "Status: 200" in text
    assert "Payload: N/A" in text
    assert "Response: Products fetched" in text


def test_entries_are_appended(tmp_path):
    audit = AuditLogger(tmp_path)

    audit.record("INFO", "first", "GET", "/health")
    audit.record("WARN", "second", "GET", "/health")

    text = read_today(audit)
    assert text.index("first") < text.index("second")
    assert "Status: UNKNOWN" in text


def test_headers_and_payload_are_written_with_password_masked(tmp_path):
    audit = AuditLogger(tmp_path)

    audit.record(
        "INFO",
        "User created",
        "POST",
        "/auth/signup",
        status=201,
        headers={"content-type": "application/json"},
        payload={"email": "a@b.com", "password": "abc123!"},
    )

    text = read_today(audit)
    assert '"content-type": "application/json"' in text
    assert '"email": "a@b.com"' in text
    assert "abc123!" not in text
    assert '"password": "***"' in text


def test_write_failure_is_swallowed(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x")
    audit = AuditLogger(blocker / "logs")

    # Не бросает исключение
    audit.record("INFO", "lost", "GET", "/health")

    assert not (blocker / "logs").exists()


def test_submit_writes_in_background(tmp_path):
    audit = AuditLogger(tmp_path)

    audit.submit("INFO", "queued", "GET", "/products", status=200)
    audit.shutdown()

    assert "Response: queued" in read_today(audit)


def test_submit_after_shutdown_writes_directly(tmp_path):
    audit = AuditLogger(tmp_path)
    audit.shutdown()

    audit.submit("INFO", "late", "GET", "/health")

    assert "Response: late" in read_today(audit)
