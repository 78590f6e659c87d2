"""Calendar document loading, event normalization and occurrence expansion."""
