"""Infrastructure: configuration, logging, backend client and storage."""
