"""Prometheus metrics for answering, caching and rooms."""
from prometheus_client import Counter, Gauge, Histogram

ANSWERS_TOTAL = Counter(
    "docchat_answers_total",
    "Answers produced by the synthesizer",
    ["outcome"],
)
ANSWER_CACHE_HITS = Counter(
    "docchat_answer_cache_hits_total",
    "Answers served from the answer cache",
)
ANSWER_LATENCY = Histogram(
    "docchat_answer_latency_seconds",
    "Time to produce an answer, including cache lookups",
)
RETRIEVAL_CANDIDATES = Histogram(
    "docchat_retrieval_candidates",
    "Candidate passages surviving the relevance floor per query",
    buckets=(0, 1, 2, 5, 10, 25, 50, 100, 250),
)
WEB_SEARCHES_TOTAL = Counter(
    "docchat_web_searches_total",
    "Web searches attempted",
    ["outcome"],
)
CACHE_ERRORS = Counter(
    "docchat_cache_errors_total",
    "Redis operations that failed and were treated as misses",
    ["operation"],
)
ACTIVE_CONNECTIONS = Gauge(
    "docchat_active_connections",
    "Connected real-time clients",
)
MESSAGES_TOTAL = Counter(
    "docchat_messages_total",
    "Chat messages persisted",
    ["kind"],
)
