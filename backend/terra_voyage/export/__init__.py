"""Trip export to PDF and calendar formats."""
