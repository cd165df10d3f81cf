"""Infrastructure adapters: logging, metrics, database, remote API, cache."""
