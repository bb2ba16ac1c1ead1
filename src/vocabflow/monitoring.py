"""Monitoring configuration for the learning scheduler."""
from prometheus_client import Counter, Histogram, start_http_server

# Session metrics
sessions_planned = Counter(
    "vocabflow_sessions_planned_total",
    "Total number of learning sessions started",
)

empty_sessions = Counter(
    "vocabflow_empty_sessions_total",
    "Total number of session requests with nothing to review",
)

session_size = Histogram(
    "vocabflow_session_size_words",
    "Number of words in a planned session",
    buckets=[5, 10, 20, 30, 50],
)

# Learning metrics
answers_recorded = Counter(
    "vocabflow_answers_total",
    "Total number of quiz answers applied to the memory model",
    ["correct"],
)

words_learned = Counter(
    "vocabflow_words_learned_total",
    "Total number of words that left the NEW status",
)

words_imported = Counter(
    "vocabflow_words_imported_total",
    "Total number of words added to the learner's library",
)

stories_completed = Counter(
    "vocabflow_stories_completed_total",
    "Total number of stories completed",
)

focus_repairs = Counter(
    "vocabflow_focus_repairs_total",
    "Total number of same-day focus word reallocations",
)

# Storage metrics
store_errors = Counter(
    "vocabflow_store_errors_total",
    "Total number of store failures",
    ["error_type"],
)

write_failures = Counter(
    "vocabflow_write_failures_total",
    "Total number of word updates that could not be persisted",
)


def start_monitoring(port: int = 9090) -> None:
    """Start the Prometheus metrics server."""
    start_http_server(port)
