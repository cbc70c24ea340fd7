"""Employee directory ingestion: read directory files into EmployeeRecord snapshots."""
