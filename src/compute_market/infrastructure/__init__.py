"""Infrastructure: configuration, logging, tracing, metrics and wiring."""
