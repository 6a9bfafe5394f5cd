"""CellScan services."""
