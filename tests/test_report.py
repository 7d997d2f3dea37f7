import io

from docbench import report
from docbench.results import LatencyResult, LoadResult


def test_latency_report_lines():
    result = LatencyResult("PostgreSQL")
    result.record("tags @> 'rust'", 10, 0.0015)
    result.record("tags @> 'nonexistent'", 0, 0.0005)
    result.skip("attr ? 'att1'", "relation does not exist")

    out = io.StringIO()
    report.print_latency_report(result, file=out)
    lines = out.getvalue().splitlines()

    assert lines[0].startswith("Query Type")
    assert lines[1] == "-" * 60
    assert lines[2].split("|")[0].strip() == "tags @> 'rust'"
    assert lines[2].split("|")[1].strip() == "10"
    assert lines[2].split("|")[2].strip() == "1.5000"
    assert "SKIPPED" in lines[4]
    assert lines[-1] == "PostgreSQL Average Latency: 1.0000ms (2 queries, 10 total results)"


def test_load_summary():
    out = io.StringIO()
    report.print_load_summary([
        LoadResult("PostgreSQL", 1000, 2.0),
        LoadResult("Elasticsearch", 1000, 4.0, batches=4, partial_batches=1),
    ], file=out)
    text = out.getvalue()

    assert "500.0" in text
    assert "250.0" in text
    assert "1 of 4 batches reported item errors" in text


def test_docs_per_second_without_elapsed():
    assert LoadResult("PostgreSQL", 10, 0.0).docs_per_second == 0.0
