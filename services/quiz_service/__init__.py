"""CellScan Quiz Service."""
