"""Command-line parsing and control flow for ocrprep."""
