"""Dataset ingestion: JSON payloads and spreadsheet CSV exports."""
