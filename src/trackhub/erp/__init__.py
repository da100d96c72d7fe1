"""ERP side of the pipeline: session handling, SQL, serialization and reconciliation."""
