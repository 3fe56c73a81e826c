"""Generic data-access core shared by every entity.

- errors: upstream error taxonomy and retry classification
- backoff: BackoffExecutor (tenacity)
- cache: TTLCacheStore
- coalescer: RequestCoalescer
- reader: CachedReader, SheetReader, SqlReader
- resolver: DualSourceResolver with RelationalFirst / LegacyOnly sources
- writer: SheetWriter, SqlWriter
- bridge: ZoneLifecycleBridge (RAW -> CORE promotion)
"""
