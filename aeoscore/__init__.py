"""AI answer-engine readiness scoring and visibility checks."""
