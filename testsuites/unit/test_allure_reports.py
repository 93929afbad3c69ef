import json

from portal_tools.report_tools import allure_reports
from portal_tools.report_tools.allure_reports import AllureReportProcessor, RunSummary, attach_email_details


def _write_result(directory, name, **result):
    (directory / f"{name}-result.json").write_text(json.dumps(result), encoding="utf-8")


def test_summary_counts_latest_attempt_only(tmp_path):
    _write_result(tmp_path, "a1", historyId="login", status="failed", fullName="test_login", start=0, stop=100)
    _write_result(tmp_path, "a2", historyId="login", status="passed", fullName="test_login", start=200, stop=300)
    _write_result(tmp_path, "b", historyId="reset", status="broken", fullName="test_reset", start=0, stop=50)
    _write_result(tmp_path, "c", historyId="sort", status="skipped", start=0, stop=10)
    (tmp_path / "bad-result.json").write_text("{not json", encoding="utf-8")

    summary = AllureReportProcessor(tmp_path).generate_summary()

    assert (summary.total, summary.passed, summary.broken, summary.skipped) == (3, 1, 1, 1)
    assert summary.failed == 0
    assert summary.failed_tests == ["test_reset"]
    assert summary.duration_ms == 160


def test_pass_rate():
    assert RunSummary().pass_rate == 0.0
    assert RunSummary(total=4, passed=3).to_dict()["pass_rate"] == "75.00%"


def test_copy_history_from_previous_report(tmp_path):
    results = tmp_path / "allure-results"
    report = tmp_path / "allure-report"
    (report / "history").mkdir(parents=True)
    (report / "history" / "history.json").write_text("{}", encoding="utf-8")
    results.mkdir()

    AllureReportProcessor(results, report).copy_history()

    assert (results / "history" / "history.json").exists()


def test_generate_report_without_cli(tmp_path, monkeypatch):
    def missing_cli(*args, **kwargs):
        raise FileNotFoundError("allure")

    monkeypatch.setattr(allure_reports.subprocess, "run", missing_cli)

    assert AllureReportProcessor(tmp_path).generate_report() is False


def test_email_details_leave_out_the_body(monkeypatch):
    attached = {}
    monkeypatch.setattr(allure_reports, "attach_json", lambda data, name: attached.update(data=data, name=name))

    attach_email_details({"from": "no-reply@portal.example.com", "subject": "Reset"}, "1234")

    assert attached["data"] == {
        "from": "no-reply@portal.example.com",
        "to": "N/A",
        "subject": "Reset",
        "date": "N/A",
        "code_found": True,
    }
