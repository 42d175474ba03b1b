"""HTTP API: feed relay, incident intake/review, sync administration, health."""
