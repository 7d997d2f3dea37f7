"""Load and query measurements collected during a run."""

from dataclasses import dataclass, field


@dataclass
class LoadResult:
    engine: str
    documents: int
    elapsed: float
    batches: int = 0
    partial_batches: int = 0
    refresh_elapsed: float = 0.0

    @property
    def docs_per_second(self):
        return self.documents / self.elapsed if self.elapsed > 0 else 0.0


@dataclass
class QueryMeasurement:
    description: str
    row_count: int
    elapsed: float


@dataclass
class SkippedQuery:
    description: str
    error: str


@dataclass
class LatencyResult:
    """Per-engine query measurements.

    Skipped queries are kept apart so they never reach the totals or the
    average's denominator.
    """

    engine: str
    measurements: list = field(default_factory=list)
    skipped: list = field(default_factory=list)

    def record(self, description, row_count, elapsed):
        self.measurements.append(QueryMeasurement(description, row_count, elapsed))

    def skip(self, description, error):
        self.skipped.append(SkippedQuery(description, str(error)))

    @property
    def query_count(self):
        return len(self.measurements)

    @property
    def total_elapsed(self):
        return sum(m.elapsed for m in self.measurements)

    @property
    def average_latency(self):
        return self.total_elapsed / self.query_count if self.query_count else 0.0

    @property
    def total_rows(self):
        return sum(m.row_count for m in self.measurements)
