"""Helper functions for keyword lists and parameter conversion."""
