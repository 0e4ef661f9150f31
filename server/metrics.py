"""
Prometheus Metrics Module

Provides instrumentation for the election service:
- Voter logins by outcome
- Ballots submitted and selections per ballot
- LLM summary calls
- API requests
- Error tracking

Usage:
    from server.metrics import metrics
    metrics.logins.labels(outcome="ballot_open").inc()
"""

from prometheus_client import Counter, Histogram, generate_latest, REGISTRY


class CouncilVoteMetrics:
    """Centralized metrics for the election API"""

    def __init__(self):
        # Voting metrics
        self.logins = Counter(
            'councilvote_logins_total',
            'Voter login attempts by outcome',
            ['outcome']  # ballot_open, already_voted, not_registered
        )

        self.ballots_submitted = Counter(
            'councilvote_ballots_submitted_total',
            'Accepted ballots'
        )

        self.ballot_selections = Histogram(
            'councilvote_ballot_selections',
            'Candidates selected per accepted ballot',
            buckets=[1, 2, 3, 4, 5, 6, 7, 8, 9, 12, 15]
        )

        self.election_resets = Counter(
            'councilvote_election_resets_total',
            'Election resets performed by the admin'
        )

        # LLM metrics
        self.llm_api_calls = Counter(
            'councilvote_llm_api_calls_total',
            'Total LLM API calls',
            ['model', 'status']
        )

        self.llm_api_duration = Histogram(
            'councilvote_llm_api_duration_seconds',
            'LLM API call duration',
            ['model'],
            buckets=[1, 2, 5, 10, 20, 30, 60]
        )

        # API metrics
        self.api_requests = Counter(
            'councilvote_api_requests_total',
            'Total API requests',
            ['endpoint', 'method', 'status_code']
        )

        self.api_request_duration = Histogram(
            'councilvote_api_request_duration_seconds',
            'API request duration',
            ['endpoint', 'method'],
            buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0]
        )

        # Error metrics
        self.errors = Counter(
            'councilvote_errors_total',
            'Total errors by component and type',
            ['component', 'error_type']
        )

    def record_llm_call(self, model: str, duration_seconds: float, success: bool = True):
        """Record a complete LLM API call

        Args:
            model: Model name (e.g., "gemini-2.5-pro")
            duration_seconds: API call duration
            success: Whether the call succeeded
        """
        status = 'success' if success else 'error'
        self.llm_api_calls.labels(model=model, status=status).inc()
        if success:
            self.llm_api_duration.labels(model=model).observe(duration_seconds)

    def record_ballot(self, selections: int):
        self.ballots_submitted.inc()
        self.ballot_selections.observe(selections)

    def record_error(self, component: str, error: Exception):
        """Record an error

        Args:
            component: Component name (store/voting/summarizer/narrator/api)
            error: Exception instance
        """
        error_type = type(error).__name__
        self.errors.labels(component=component, error_type=error_type).inc()


# Global metrics instance
metrics = CouncilVoteMetrics()


def get_metrics_text() -> str:
    """Get Prometheus metrics in text format"""
    return generate_latest(REGISTRY).decode('utf-8')
