"""Review caching, refresh scheduling and product deduplication services."""
