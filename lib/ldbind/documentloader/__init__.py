"""Remote document loaders for fetching contexts."""
