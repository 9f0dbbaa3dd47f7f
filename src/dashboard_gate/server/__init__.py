"""HTTP server hosting the gated dashboard."""
