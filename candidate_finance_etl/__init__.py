"""Campaign-finance ingestion pipeline: FEC identity, committees, Schedule A donors."""
