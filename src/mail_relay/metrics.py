"""Prometheus metrics definitions for Mail Relay."""

from prometheus_client import Counter, Histogram

# Counter metrics
requests_total = Counter(
    "mail_relay_requests_total",
    "Total number of HTTP requests handled",
    ["status"],  # HTTP status code
)

emails_sent_total = Counter(
    "mail_relay_emails_sent_total",
    "Total number of emails submitted to the SMTP relay",
    ["status"],  # success, failed
)

auth_failures_total = Counter(
    "mail_relay_auth_failures_total",
    "Total number of rejected API keys",
    ["reason"],  # missing, invalid
)

validation_failures_total = Counter(
    "mail_relay_validation_failures_total",
    "Total number of rejected request payloads",
)

# Histogram metrics
smtp_session_seconds = Histogram(
    "mail_relay_smtp_session_seconds",
    "SMTP session duration in seconds",
    ["status"],  # success, failed
    buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
)
