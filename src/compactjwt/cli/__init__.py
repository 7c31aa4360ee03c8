"""compactjwt command line."""
