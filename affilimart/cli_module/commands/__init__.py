"""Command groups for the Affilimart CLI."""
