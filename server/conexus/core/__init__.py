"""Cross-cutting infrastructure: settings, persistence, errors, security, observability."""
