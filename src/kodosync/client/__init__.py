"""Client module - remote object store interface and the Kodo HTTP client."""
