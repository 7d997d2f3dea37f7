"""Plain-text tables for load throughput and query latency."""

import sys

RULE = "-" * 60


def print_latency_report(result, file=None):
    file = file or sys.stdout

    print(f"{'Query Type':<25} | {'Count':<10} | {'Latency (ms)':<15}", file=file)
    print(RULE, file=file)
    for m in result.measurements:
        print(f"{m.description:<25} | {m.row_count:<10} | {m.elapsed * 1000.0:<15.4f}", file=file)
    for s in result.skipped:
        print(f"{s.description:<25} | {'SKIPPED':<10} | {s.error}", file=file)
    print(RULE, file=file)
    print(
        f"{result.engine} Average Latency: {result.average_latency * 1000.0:.4f}ms "
        f"({result.query_count} queries, {result.total_rows} total results)",
        file=file,
    )


def print_load_summary(load_results, file=None):
    file = file or sys.stdout

    print(f"{'Engine':<15} | {'Documents':<10} | {'Time (s)':<10} | {'Docs/s':<12}", file=file)
    print(RULE, file=file)
    for r in load_results:
        print(
            f"{r.engine:<15} | {r.documents:<10} | {r.elapsed:<10.3f} | {r.docs_per_second:<12.1f}",
            file=file,
        )
        if r.partial_batches:
            print(f"  {r.partial_batches} of {r.batches} batches reported item errors", file=file)
    print(RULE, file=file)
