"""Meeting minutes -- resilient generation and versioned storage.

Raw notes go through MinutesGenerator (InvocationGuard around the provider
call, then extract_json and normalize_minutes) and are persisted by
VersionChainManager as the root of a lineage that later edits extend.
MinutesService is the entry point request handlers use.
"""
