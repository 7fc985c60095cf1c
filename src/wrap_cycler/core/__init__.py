"""Transaction orchestration engine: amount planning, fee quoting,
confirmation retries, per-wallet cycling and fleet iteration."""
