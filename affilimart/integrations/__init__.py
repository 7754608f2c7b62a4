"""Third-party integrations: QR encoding and image hosting."""
