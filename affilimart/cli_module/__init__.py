"""Command line interface for Affilimart."""
