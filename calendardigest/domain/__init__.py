"""Report window, grouping, formatting and the digest pipeline."""
