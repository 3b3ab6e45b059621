"""I/O collaborators around the pure feed pipeline.

Available Services:
    - sheets_reader: Google Sheets values for the Import and Feed Control List tabs
    - inventory_client: Live stock and price lookups by SKU
    - feed_cache: Rendered-document cache with TTL freshness
    - feed_service: Request orchestration (cache, reads, lookup, build)
"""
