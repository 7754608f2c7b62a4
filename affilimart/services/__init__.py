"""Services for the Affilimart application."""
