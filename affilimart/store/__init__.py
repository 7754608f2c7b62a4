"""JSON document store used as the Affilimart persistence layer."""
