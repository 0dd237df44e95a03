import csv

import pytest

from analysis import analyze
from report import write_result_csv, generate_pdf_report, result_rows


@pytest.fixture
def result(noise_png, red_png):
    return analyze(noise_png, red_png)


def test_result_rows(result):
    rows = result_rows(result, ["cat.png", "red.png"])
    assert [r["slot"] for r in rows] == [1, 2]
    assert rows[1]["filename"] == "red.png"
    assert rows[1]["classification"] == "General Subject / Abstract"
    assert all(r["similarity_score"] == result.similarity_score for r in rows)


def test_write_result_csv(tmp_path, result):
    out = write_result_csv(result, str(tmp_path / "nested" / "out.csv"))
    assert out.exists()
    with out.open(newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert len(rows) == 2
    assert rows[0]["filename"] == "Image 1"
    assert rows[1]["is_low_contrast"] == "True"
    assert rows[1]["width"] == "100"
    assert rows[0]["similarity_score"] == str(result.similarity_score)
    assert "histogram" not in rows[0]


def test_generate_pdf_report(tmp_path, result):
    out = tmp_path / "report.pdf"
    assert generate_pdf_report(str(out), result, ["a & b.png", "<red>.png"]) == str(out)
    assert out.read_bytes().startswith(b"%PDF")
