"""Language server for schema text."""
