"""Core services: logging, exceptions, retry, configuration, HTTP and file I/O."""
