"""
Prometheus metrics for the document verification service.
"""

from prometheus_client import Counter, Histogram, Gauge


# ── Requests ─────────────────────────────────────────────────
verification_requests_total = Counter(
    "verification_requests_total",
    "Verification requests processed, by aggregate status",
    ["status"],
)

verification_duration_seconds = Histogram(
    "verification_duration_seconds",
    "Time to process a verification request end-to-end",
    buckets=[0.5, 1, 5, 10, 30, 60, 120, 300],
)

# ── Documents ────────────────────────────────────────────────
documents_verified_total = Counter(
    "documents_verified_total",
    "Documents that passed the full pipeline",
    ["document_type", "authentic"],
)

document_failures_total = Counter(
    "document_failures_total",
    "Documents isolated as failures within a request",
    ["document_type", "kind"],
)

validation_scores = Histogram(
    "validation_scores",
    "Distribution of document validation scores",
    ["document_type"],
    buckets=[0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9, 0.95, 1.0],
)

# ── Pipeline Stages ──────────────────────────────────────────
pipeline_stage_duration_seconds = Histogram(
    "pipeline_stage_duration_seconds",
    "Time per pipeline stage",
    ["stage"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1, 5, 10, 30],
)

# ── OCR ──────────────────────────────────────────────────────
ocr_latency_seconds = Histogram(
    "ocr_latency_seconds",
    "Latency of OCR engine calls",
    ["engine_name"],
    buckets=[0.1, 0.5, 1, 2, 5, 10, 30],
)

ocr_mock_fallback_total = Counter(
    "ocr_mock_fallback_total",
    "Extractions served from mock text because no OCR engine was available",
    ["document_type"],
)

# ── Worker ───────────────────────────────────────────────────
worker_jobs_active = Gauge(
    "worker_jobs_active",
    "Number of currently active worker jobs",
)
